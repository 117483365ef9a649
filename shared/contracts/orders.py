"""Values shared over the wire between the orchestrator and the order store."""
import enum


class OrderStatus(enum.IntEnum):
    AWAITING_PAYMENT = 10
    AWAITING_SHIPMENT = 20
    SHIPPED = 30
    COMPLETED = 40
    CANCELLED = 50


# Gateway trade statuses that mean the buyer has paid
TRADE_SUCCESS_STATUSES = frozenset({"TRADE_SUCCESS", "TRADE_FINISHED"})
