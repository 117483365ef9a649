"""
Time-ordered 64-bit identifiers for orders.

Layout (most significant bit first): 1 unused sign bit, 41 bits of
milliseconds since a fixed epoch, 10 bits of worker id, 12 bits of
per-millisecond sequence. Two generators never collide as long as their
worker ids differ, so every orchestrator replica must be started with its
own ``ORDER_ID_WORKER_ID``.
"""
import threading
import time
from typing import Callable

TIMESTAMP_BITS = 41
WORKER_ID_BITS = 10
SEQUENCE_BITS = 12

MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1

WORKER_ID_SHIFT = SEQUENCE_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS


class ClockMovedBackwards(RuntimeError):
    pass


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeGenerator:
    """Thread-safe generator; construct one per process and inject it."""

    def __init__(self, worker_id: int, epoch_ms: int, clock: Callable[[], int] = _now_ms):
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}, got {worker_id}")
        if epoch_ms > clock():
            raise ValueError("epoch_ms lies in the future")
        self.worker_id = worker_id
        self.epoch_ms = epoch_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_id(self) -> int:
        with self._lock:
            now = self._clock()
            if now < self._last_ms:
                raise ClockMovedBackwards(
                    f"clock moved backwards by {self._last_ms - now}ms; refusing to issue ids"
                )

            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond
                    now = self._wait_next_ms(self._last_ms)
            else:
                self._sequence = 0

            self._last_ms = now
            elapsed = now - self.epoch_ms
            if elapsed > MAX_TIMESTAMP:
                raise OverflowError("timestamp bits exhausted for this epoch")

            return (
                (elapsed << TIMESTAMP_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | self._sequence
            )

    def _wait_next_ms(self, last_ms: int) -> int:
        now = self._clock()
        while now <= last_ms:
            time.sleep(0.0001)
            now = self._clock()
        return now

    def decompose(self, order_id: int) -> dict:
        """Split an id back into its timestamp, worker and sequence parts."""
        return {
            "timestamp_ms": (order_id >> TIMESTAMP_SHIFT) + self.epoch_ms,
            "worker_id": (order_id >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
            "sequence": order_id & MAX_SEQUENCE,
        }
