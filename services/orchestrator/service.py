import time
import uuid
from typing import Iterable, Mapping, Optional

import structlog

from shared.contracts import OrderStatus, TRADE_SUCCESS_STATUSES
from shared.observability import (
    ecomm_order_placement_duration_seconds,
    ecomm_orders_created_total,
    ecomm_payment_notifications_total,
)
from services.payment_service.gateway import SignatureVerificationError
from .clients import RemoteCallError
from .domain import ConfirmationResult, PlacementResult, RequestedItem
from .errors import (
    EmptyItemList,
    InvalidOrderState,
    InvalidQuantity,
    InvalidSignature,
    OrderNotFound,
    OrderSagaError,
    UpstreamUnavailable,
)
from .order_saga import build_order_saga

logger = structlog.get_logger(__name__)


def merge_items(items: Iterable[RequestedItem]) -> list[RequestedItem]:
    """
    Validates quantities and folds repeated variants into one line, keeping
    the order in which variants first appear.
    """
    totals: dict[int, int] = {}
    for item in items:
        if item.quantity <= 0:
            raise InvalidQuantity(item.variant_id, item.quantity)
        totals[item.variant_id] = totals.get(item.variant_id, 0) + item.quantity
    if not totals:
        raise EmptyItemList()
    return [RequestedItem(variant_id=vid, quantity=qty) for vid, qty in totals.items()]


class OrderOrchestrator:
    """Composes inventory, order store, cart and payment gateway into the order flows."""

    def __init__(self, inventory, cart, order_store, payment_gateway, id_generator):
        self.inventory = inventory
        self.cart = cart
        self.order_store = order_store
        self.payment_gateway = payment_gateway
        self.id_generator = id_generator

    async def place_order(
        self,
        user_id: int,
        items: Iterable[RequestedItem],
        shipping_address: Optional[dict] = None,
        correlation_id: Optional[str] = None,
    ) -> PlacementResult:
        correlation_id = correlation_id or uuid.uuid4().hex
        log = logger.bind(correlation_id=correlation_id, user_id=user_id)

        merged = merge_items(list(items))
        log.info("order_placement_started", item_count=len(merged))

        ctx = {
            "inventory": self.inventory,
            "cart": self.cart,
            "order_store": self.order_store,
            "id_generator": self.id_generator,
            "user_id": user_id,
            "items": merged,
            "shipping_address": shipping_address,
            "correlation_id": correlation_id,
        }
        started = time.perf_counter()
        try:
            await build_order_saga().execute(ctx)
        except OrderSagaError as e:
            ecomm_orders_created_total.labels(status="failure").inc()
            log.warning("order_placement_failed", error=type(e).__name__, step=e.step,
                        detail=e.message, context=e.context)
            raise
        finally:
            ecomm_order_placement_duration_seconds.observe(time.perf_counter() - started)

        order = ctx["order"]
        ecomm_orders_created_total.labels(status="success").inc()
        log.info("order_created", order_id=order.order_id, total_amount=order.total_amount)
        return PlacementResult(
            order=order,
            cart_cleanup=ctx["outcomes"]["clear_cart"],
            correlation_id=correlation_id,
        )

    async def get_payment_url(self, user_id: int, order_id: int) -> str:
        try:
            order = await self.order_store.get_order(order_id)
        except RemoteCallError as e:
            raise UpstreamUnavailable("order lookup failed", step="get_order", order_id=order_id) from e
        if order is None:
            raise OrderNotFound(order_id)
        if order.user_id != user_id or order.status != OrderStatus.AWAITING_PAYMENT:
            raise InvalidOrderState(order_id)
        return self.payment_gateway.build_payment_url(order)

    async def confirm_payment(self, payload: Mapping[str, str]) -> ConfirmationResult:
        """
        Applies a gateway notification. Safe under re-delivery: only an order
        still awaiting payment moves, anything else is a no-op success.
        """
        try:
            verified = self.payment_gateway.verify_notification(payload)
        except SignatureVerificationError as e:
            ecomm_payment_notifications_total.labels(outcome="invalid_signature").inc()
            logger.warning("payment_notification_rejected", reason=str(e))
            raise InvalidSignature(str(e)) from e

        trade_status = verified.get("trade_status", "")
        raw_order_id = verified.get("out_trade_no", "")
        log = logger.bind(out_trade_no=raw_order_id, trade_status=trade_status)

        if trade_status not in TRADE_SUCCESS_STATUSES:
            ecomm_payment_notifications_total.labels(outcome="ignored").inc()
            log.info("payment_notification_ignored")
            return ConfirmationResult(order_id=None, outcome="ignored")

        try:
            order_id = int(raw_order_id)
        except ValueError:
            # Signed by the gateway but not one of our ids; nothing to apply
            ecomm_payment_notifications_total.labels(outcome="ignored").inc()
            log.warning("payment_notification_unknown_order")
            return ConfirmationResult(order_id=None, outcome="ignored")

        try:
            result = await self.order_store.update_status(
                order_id, OrderStatus.AWAITING_PAYMENT, OrderStatus.AWAITING_SHIPMENT,
            )
        except RemoteCallError as e:
            # Propagated so the gateway re-delivers later
            raise UpstreamUnavailable(
                "payment status transition failed", step="update_status", order_id=order_id,
            ) from e

        if result is None:
            ecomm_payment_notifications_total.labels(outcome="ignored").inc()
            log.warning("payment_notification_unknown_order")
            return ConfirmationResult(order_id=order_id, outcome="ignored")

        updated, current = result
        if updated:
            ecomm_payment_notifications_total.labels(outcome="applied").inc()
            log.info("order_paid", order_id=order_id)
            return ConfirmationResult(order_id=order_id, outcome="applied")

        ecomm_payment_notifications_total.labels(outcome="duplicate").inc()
        log.info("payment_notification_duplicate", order_id=order_id, current_status=current.name)
        return ConfirmationResult(order_id=order_id, outcome="duplicate")
