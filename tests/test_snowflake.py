import threading

import pytest

from shared.idgen import ClockMovedBackwards, SnowflakeGenerator
from shared.idgen.snowflake import MAX_SEQUENCE

EPOCH = 1704067200000


class ManualClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_ids_encode_timestamp_worker_and_sequence():
    clock = ManualClock(EPOCH + 5000)
    gen = SnowflakeGenerator(worker_id=7, epoch_ms=EPOCH, clock=clock)

    first, second = gen.next_id(), gen.next_id()

    assert gen.decompose(first) == {"timestamp_ms": EPOCH + 5000, "worker_id": 7, "sequence": 0}
    assert gen.decompose(second)["sequence"] == 1
    assert second > first


def test_ids_increase_with_time():
    clock = ManualClock(EPOCH + 1)
    gen = SnowflakeGenerator(worker_id=1, epoch_ms=EPOCH, clock=clock)
    earlier = gen.next_id()
    clock.now += 1
    later = gen.next_id()

    assert later > earlier
    assert gen.decompose(later)["sequence"] == 0


def test_sequence_exhaustion_waits_for_next_millisecond():
    readings = iter([EPOCH + 10] * (MAX_SEQUENCE + 3) + [EPOCH + 11] * 10)
    gen = SnowflakeGenerator(worker_id=1, epoch_ms=EPOCH, clock=lambda: next(readings))

    ids = [gen.next_id() for _ in range(MAX_SEQUENCE + 2)]

    assert len(set(ids)) == len(ids)
    assert gen.decompose(ids[-1]) == {"timestamp_ms": EPOCH + 11, "worker_id": 1, "sequence": 0}


def test_clock_moving_backwards_is_refused():
    clock = ManualClock(EPOCH + 100)
    gen = SnowflakeGenerator(worker_id=1, epoch_ms=EPOCH, clock=clock)
    gen.next_id()
    clock.now -= 5

    with pytest.raises(ClockMovedBackwards):
        gen.next_id()


def test_different_workers_never_collide():
    clock = ManualClock(EPOCH + 42)
    a = SnowflakeGenerator(worker_id=1, epoch_ms=EPOCH, clock=clock)
    b = SnowflakeGenerator(worker_id=2, epoch_ms=EPOCH, clock=clock)

    assert {a.next_id() for _ in range(100)}.isdisjoint({b.next_id() for _ in range(100)})


@pytest.mark.parametrize("worker_id", [-1, 1024])
def test_worker_id_range(worker_id):
    with pytest.raises(ValueError):
        SnowflakeGenerator(worker_id=worker_id, epoch_ms=EPOCH)


def test_concurrent_callers_get_unique_ids():
    gen = SnowflakeGenerator(worker_id=5, epoch_ms=EPOCH)
    results = []
    lock = threading.Lock()

    def worker():
        local = [gen.next_id() for _ in range(500)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == len(set(results)) == 4000
