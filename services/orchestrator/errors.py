"""
Order saga error taxonomy.

Validation and availability errors are the caller's to fix and are returned
with full detail. Reservation, persistence and upstream failures are
reported to users only as a generic message plus the correlation id; the
diagnostic context (saga step, identifiers) goes to the logs.
"""
from typing import Any, Optional

GENERIC_FAILURE = "order could not be placed"


class OrderSagaError(Exception):
    code = 1000
    http_status = 500
    expose_detail = True

    def __init__(self, message: str, *, step: Optional[str] = None, correlation_id: Optional[str] = None,
                 **context: Any):
        super().__init__(message)
        self.message = message
        self.step = step
        self.correlation_id = correlation_id
        self.context = context

    def public_body(self) -> dict:
        body = {
            "code": self.code,
            "error": type(self).__name__,
            "message": self.message if self.expose_detail else GENERIC_FAILURE,
        }
        if self.expose_detail and self.context:
            body["context"] = self.context
        if self.correlation_id:
            body["correlation_id"] = self.correlation_id
        return body


# --- Validation (rejected before any remote call) ---

class EmptyItemList(OrderSagaError):
    code = 5002
    http_status = 422

    def __init__(self, **kwargs):
        super().__init__("order must contain at least one item", step="validate", **kwargs)


class InvalidQuantity(OrderSagaError):
    code = 5004
    http_status = 422

    def __init__(self, variant_id: int, quantity: int, **kwargs):
        super().__init__(
            f"quantity for variant {variant_id} must be positive, got {quantity}",
            step="validate", variant_id=variant_id, quantity=quantity, **kwargs,
        )
        self.variant_id = variant_id


# --- Availability (from the pricing snapshot) ---

class ProductUnavailable(OrderSagaError):
    code = 3004
    http_status = 409

    def __init__(self, variant_ids: list[int], **kwargs):
        super().__init__(
            f"variants no longer available: {sorted(variant_ids)}",
            step="fetch_snapshots", variant_ids=sorted(variant_ids), **kwargs,
        )
        self.variant_ids = sorted(variant_ids)


class InsufficientStock(OrderSagaError):
    code = 6002
    http_status = 409

    def __init__(self, variant_id: int, requested: int, available: int, **kwargs):
        super().__init__(
            f"variant {variant_id} has insufficient stock",
            step="check_stock", variant_id=variant_id, requested=requested, available=available, **kwargs,
        )
        self.variant_id = variant_id


# --- Remote failures (generic to users) ---

class UpstreamUnavailable(OrderSagaError):
    code = 1007
    http_status = 503
    expose_detail = False


class StockReservationFailed(OrderSagaError):
    code = 6003
    http_status = 503
    expose_detail = False


class OrderPersistFailed(OrderSagaError):
    code = 4008
    http_status = 503
    expose_detail = False


class CartClearFailed(OrderSagaError):
    """Only ever reported inside a best-effort StepOutcome."""
    code = 5005
    http_status = 500
    expose_detail = False


# --- Payment ---

class InvalidSignature(OrderSagaError):
    code = 7006
    http_status = 400

    def __init__(self, reason: str, **kwargs):
        super().__init__("invalid signature", step="verify_notification", reason=reason, **kwargs)

    def public_body(self) -> dict:
        # The reason stays in the logs
        return {"code": self.code, "error": type(self).__name__, "message": self.message}


class OrderNotFound(OrderSagaError):
    code = 4001
    http_status = 404

    def __init__(self, order_id: int, **kwargs):
        super().__init__(f"order {order_id} not found", order_id=order_id, **kwargs)


class InvalidOrderState(OrderSagaError):
    code = 4002
    http_status = 409

    def __init__(self, order_id: int, **kwargs):
        super().__init__(
            f"order {order_id} is not awaiting payment for this user", order_id=order_id, **kwargs,
        )
