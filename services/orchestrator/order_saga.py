"""
Steps of the order-placement saga.

Each step reads and writes the shared ``ctx`` dict. The durable write in
``persist_order`` is the point of no return: anything failing before it
rolls the reservation back, anything after it is best-effort.
"""
import structlog

from shared.contracts import OrderStatus
from shared.observability import ecomm_orphaned_reservations_total, ecomm_cart_cleanup_failures_total
from .clients import RemoteCallError, RemoteTimeout
from .domain import OrderHeader, OrderLineItem
from .errors import (
    CartClearFailed,
    InsufficientStock,
    OrderPersistFailed,
    ProductUnavailable,
    StockReservationFailed,
    UpstreamUnavailable,
)
from .saga import SagaOrchestrator

logger = structlog.get_logger(__name__)


# --- ACTIONS ---

async def fetch_snapshots(ctx: dict):
    requested_ids = [item.variant_id for item in ctx["items"]]
    try:
        snapshots = await ctx["inventory"].get_sku_snapshots(requested_ids)
    except RemoteCallError as e:
        raise UpstreamUnavailable(
            "pricing snapshot lookup failed", step="fetch_snapshots",
            correlation_id=ctx["correlation_id"], variant_ids=requested_ids,
        ) from e

    wanted = set(requested_ids)
    by_id = {snapshot.variant_id: snapshot for snapshot in snapshots if snapshot.variant_id in wanted}
    missing = [vid for vid in requested_ids if vid not in by_id]
    if missing or len(snapshots) != len(requested_ids):
        raise ProductUnavailable(missing or requested_ids, correlation_id=ctx["correlation_id"])
    ctx["snapshots"] = by_id


async def price_lines(ctx: dict):
    """Advisory stock check and pricing, purely against the snapshot."""
    lines = []
    total = 0
    for item in ctx["items"]:
        snapshot = ctx["snapshots"][item.variant_id]
        if snapshot.available_stock < item.quantity:
            raise InsufficientStock(
                item.variant_id, item.quantity, snapshot.available_stock,
                correlation_id=ctx["correlation_id"],
            )
        line = OrderLineItem.from_snapshot(snapshot, item.quantity)
        lines.append(line)
        total += line.subtotal
    ctx["lines"] = lines
    ctx["total_amount"] = total


async def reserve_stock(ctx: dict):
    try:
        await ctx["inventory"].reserve_stock(ctx["lines"])
    except RemoteCallError as e:
        # A timed-out reservation is handled exactly like a refused one
        raise StockReservationFailed(
            f"stock reservation failed: {e}", step="reserve_stock",
            correlation_id=ctx["correlation_id"],
            variant_ids=[line.variant_id for line in ctx["lines"]],
        ) from e


async def assign_order_id(ctx: dict):
    ctx["order_id"] = ctx["id_generator"].next_id()


def _write_refused(error: RemoteCallError) -> bool:
    """A 4xx answer means the store rejected the write; nothing was committed."""
    return (
        not isinstance(error, RemoteTimeout)
        and error.status_code is not None
        and 400 <= error.status_code < 500
    )


async def persist_order(ctx: dict):
    total = ctx["total_amount"]
    shipping_fee = 0
    header = OrderHeader(
        order_id=ctx["order_id"],
        user_id=ctx["user_id"],
        total_amount=total,
        payment_amount=total + shipping_fee,
        shipping_fee=shipping_fee,
        status=OrderStatus.AWAITING_PAYMENT,
        shipping_address=ctx.get("shipping_address"),
    )
    store = ctx["order_store"]
    try:
        ctx["order"] = await store.create_order_atomic(header, ctx["lines"])
        return
    except RemoteCallError as e:
        if _write_refused(e):
            raise OrderPersistFailed(
                f"order write failed: {e}", step="persist_order",
                correlation_id=ctx["correlation_id"], order_id=header.order_id,
            ) from e
        write_error = e

    # Anything short of an explicit refusal may have committed. The id was
    # assigned before the write, so the store can tell us.
    try:
        existing = await store.get_order(header.order_id)
    except RemoteCallError as probe_error:
        ctx["persist_outcome_unknown"] = True
        logger.critical("order_persist_outcome_unknown", order_id=header.order_id,
                        write_error=str(write_error), probe_error=str(probe_error))
        raise OrderPersistFailed(
            "order write outcome could not be confirmed", step="persist_order",
            correlation_id=ctx["correlation_id"], order_id=header.order_id,
        ) from write_error

    if existing is None:
        raise OrderPersistFailed(
            "order write failed and was not committed", step="persist_order",
            correlation_id=ctx["correlation_id"], order_id=header.order_id,
        ) from write_error
    logger.info("order_persist_confirmed_after_failure", order_id=header.order_id)
    ctx["order"] = existing


async def clear_cart(ctx: dict):
    try:
        await ctx["cart"].clear_items(ctx["user_id"], [item.variant_id for item in ctx["items"]])
    except RemoteCallError as e:
        ecomm_cart_cleanup_failures_total.inc()
        raise CartClearFailed(
            f"cart cleanup failed: {e}", step="clear_cart",
            correlation_id=ctx["correlation_id"], user_id=ctx["user_id"], order_id=ctx["order_id"],
        ) from e


# --- COMPENSATIONS (Rollbacks) ---

async def release_stock(ctx: dict):
    if ctx.get("persist_outcome_unknown"):
        # The order may exist; releasing could oversell. Escalate instead.
        ecomm_orphaned_reservations_total.inc()
        logger.critical("stock_reservation_orphaned", order_id=ctx.get("order_id"),
                        lines=[line.to_dict() for line in ctx["lines"]],
                        action="reconcile order against inventory manually")
        return
    try:
        await ctx["inventory"].release_stock(ctx["lines"])
    except RemoteCallError:
        ecomm_orphaned_reservations_total.inc()
        raise


# --- BUILDER FACTORY ---

def build_order_saga() -> SagaOrchestrator:
    saga = SagaOrchestrator()
    saga.add_step("fetch_snapshots", fetch_snapshots, None) # Read-only, no rollback needed
    saga.add_step("price_lines", price_lines, None)
    saga.add_step("reserve_stock", reserve_stock, release_stock)
    saga.add_step("assign_order_id", assign_order_id, None)
    saga.add_step("persist_order", persist_order, None)
    saga.add_best_effort_step("clear_cart", clear_cart)
    return saga
