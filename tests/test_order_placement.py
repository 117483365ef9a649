import json

import httpx
import pytest

from shared.contracts import OrderStatus
from services.orchestrator.clients import OrderStoreClient, RemoteCallError, RemoteTimeout
from services.orchestrator.domain import RequestedItem
from services.orchestrator.service import OrderOrchestrator
from services.orchestrator.errors import (
    CartClearFailed,
    EmptyItemList,
    InsufficientStock,
    InvalidQuantity,
    OrderPersistFailed,
    ProductUnavailable,
    StockReservationFailed,
    UpstreamUnavailable,
)
from tests.fakes import remote_failure, snapshot


async def test_place_order_prices_from_snapshot(orchestrator, order_store, inventory, cart):
    result = await orchestrator.place_order(42, [RequestedItem(variant_id=1001, quantity=2)])

    order = result.order
    assert order.total_amount == 1799800
    assert order.payment_amount == 1799800
    assert order.status == OrderStatus.AWAITING_PAYMENT
    assert len(order.items) == 1
    assert order.items[0].subtotal == 1799800
    assert order.items[0].unit_price == 899900
    assert order.order_id in order_store.orders
    assert inventory.stock[1001] == 97
    assert cart.calls == [(42, [1001])]
    assert result.cart_cleanup.ok


async def test_total_is_sum_of_snapshot_subtotals(orchestrator, inventory):
    inventory.skus[2002] = snapshot(variant_id=2002, product_id=502, unit_price=1999, available_stock=10,
                                    title="Case")
    inventory.stock[2002] = 10

    result = await orchestrator.place_order(
        42, [RequestedItem(1001, 1), RequestedItem(2002, 3)], shipping_address={"city": "Hangzhou"},
    )

    order = result.order
    assert order.total_amount == sum(line.unit_price * line.quantity for line in order.items)
    assert order.total_amount == 899900 + 3 * 1999
    assert order.shipping_address == {"city": "Hangzhou"}


async def test_duplicate_variant_lines_are_merged(orchestrator, inventory, order_store):
    result = await orchestrator.place_order(42, [RequestedItem(1001, 2), RequestedItem(1001, 3)])

    assert [(l.variant_id, l.quantity) for l in result.order.items] == [(1001, 5)]
    assert inventory.called("reserve_stock") == [[(1001, 5)]]


async def test_insufficient_stock_writes_nothing(orchestrator, inventory, order_store, cart):
    with pytest.raises(InsufficientStock) as exc_info:
        await orchestrator.place_order(42, [RequestedItem(1001, 200)])

    assert exc_info.value.variant_id == 1001
    assert order_store.create_calls == []
    assert order_store.orders == {}
    assert inventory.called("reserve_stock") == []
    assert cart.calls == []


async def test_unknown_variant_is_unavailable_without_reservation(orchestrator, inventory, order_store):
    with pytest.raises(ProductUnavailable) as exc_info:
        await orchestrator.place_order(42, [RequestedItem(1001, 1), RequestedItem(9999, 1)])

    assert exc_info.value.variant_ids == [9999]
    assert inventory.called("reserve_stock") == []
    assert order_store.create_calls == []


@pytest.mark.parametrize("items, error", [
    ([], EmptyItemList),
    ([RequestedItem(1001, 0)], InvalidQuantity),
    ([RequestedItem(1001, 1), RequestedItem(2002, -4)], InvalidQuantity),
])
async def test_validation_happens_before_any_remote_call(orchestrator, inventory, items, error):
    with pytest.raises(error):
        await orchestrator.place_order(42, items)
    assert inventory.calls == []


async def test_reservation_failure_aborts(orchestrator, inventory, order_store, cart):
    inventory.reserve_error = remote_failure("inventory", "reserve_stock")

    with pytest.raises(StockReservationFailed) as exc_info:
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert isinstance(exc_info.value.__cause__, RemoteCallError)
    assert order_store.create_calls == []
    assert cart.calls == []
    # Nothing was reserved, so nothing is released
    assert inventory.called("release_stock") == []


async def test_reservation_timeout_is_a_failed_reservation(orchestrator, inventory, order_store):
    inventory.reserve_error = RemoteTimeout("inventory", "reserve_stock", "timed out")

    with pytest.raises(StockReservationFailed):
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])
    assert order_store.create_calls == []


async def test_snapshot_failure_is_upstream_error(orchestrator, inventory):
    inventory.snapshot_error = remote_failure("inventory", "get_sku_snapshots")

    with pytest.raises(UpstreamUnavailable):
        await orchestrator.place_order(42, [RequestedItem(1001, 1)])
    assert inventory.called("reserve_stock") == []


async def test_persist_failure_releases_reservation(orchestrator, inventory, order_store, cart):
    order_store.create_error = remote_failure("order_store", "create_order_atomic")

    with pytest.raises(OrderPersistFailed) as exc_info:
        await orchestrator.place_order(42, [RequestedItem(1001, 2)], correlation_id="corr-1")

    assert exc_info.value.correlation_id == "corr-1"
    assert inventory.called("release_stock") == [[(1001, 2)]]
    assert inventory.stock[1001] == 99
    assert order_store.orders == {}
    assert cart.calls == []


async def test_persist_timeout_with_committed_order_succeeds(orchestrator, inventory, order_store):
    order_store.create_error = RemoteTimeout("order_store", "create_order_atomic", "timed out")
    order_store.fail_after_commit = True

    result = await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert result.order.order_id in order_store.orders
    assert inventory.called("release_stock") == []
    assert inventory.stock[1001] == 97


async def test_persist_timeout_without_commit_releases(orchestrator, inventory, order_store):
    order_store.create_error = RemoteTimeout("order_store", "create_order_atomic", "timed out")

    with pytest.raises(OrderPersistFailed):
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert order_store.orders == {}
    assert inventory.called("release_stock") == [[(1001, 2)]]


async def test_unconfirmable_persist_keeps_reservation(orchestrator, inventory, order_store):
    order_store.create_error = RemoteTimeout("order_store", "create_order_atomic", "timed out")
    order_store.get_error = remote_failure("order_store", "get_order")

    with pytest.raises(OrderPersistFailed):
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    # The order might exist, so stock is not handed back
    assert inventory.called("release_stock") == []
    assert inventory.stock[1001] == 97


async def test_failed_release_still_reports_persist_failure(orchestrator, inventory, order_store):
    order_store.create_error = remote_failure("order_store", "create_order_atomic")
    inventory.release_error = remote_failure("inventory", "release_stock")

    with pytest.raises(OrderPersistFailed):
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])
    assert inventory.called("release_stock") == [[(1001, 2)]]


async def test_cart_failure_does_not_fail_placement(orchestrator, cart, order_store, inventory):
    cart.error = remote_failure("cart", "clear_items")

    result = await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert result.order.status == OrderStatus.AWAITING_PAYMENT
    assert result.order.order_id in order_store.orders
    assert not result.cart_cleanup.ok
    assert isinstance(result.cart_cleanup.error, CartClearFailed)
    assert inventory.called("release_stock") == []


async def test_order_ids_are_unique_across_placements(orchestrator, order_store):
    first = await orchestrator.place_order(42, [RequestedItem(1001, 1)])
    second = await orchestrator.place_order(42, [RequestedItem(1001, 1)])

    assert first.order.order_id != second.order.order_id
    assert len(order_store.orders) == 2


async def test_unreadable_write_response_after_commit_keeps_order(orchestrator, inventory, order_store):
    order_store.create_error = RemoteCallError(
        "order_store", "create_order_atomic", "unreadable response (JSONDecodeError)", status_code=201,
    )
    order_store.fail_after_commit = True

    result = await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert order_store.get_calls == [result.order.order_id]
    assert inventory.called("release_stock") == []
    assert inventory.stock[1001] == 97


async def test_server_error_on_write_checks_store_before_releasing(orchestrator, inventory, order_store):
    order_store.create_error = remote_failure("order_store", "create_order_atomic")

    with pytest.raises(OrderPersistFailed) as exc_info:
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert order_store.get_calls == [exc_info.value.context["order_id"]]
    assert inventory.called("release_stock") == [[(1001, 2)]]


async def test_refused_write_releases_without_lookup(orchestrator, inventory, order_store):
    order_store.create_error = RemoteCallError(
        "order_store", "create_order_atomic", "HTTP 409: Order already exists", status_code=409,
    )

    with pytest.raises(OrderPersistFailed):
        await orchestrator.place_order(42, [RequestedItem(1001, 2)])

    assert order_store.get_calls == []
    assert inventory.called("release_stock") == [[(1001, 2)]]


async def test_committed_order_with_garbled_reply_is_not_released(inventory, cart, payment_gateway, id_generator):
    committed = {}

    def handler(request):
        if request.method == "POST":
            body = json.loads(request.content)
            committed[body["header"]["order_id"]] = {**body["header"], "items": body["items"]}
            return httpx.Response(201, text="created")
        order = committed.get(int(request.url.path.rsplit("/", 1)[-1]))
        if order is None:
            return httpx.Response(404, json={"detail": "Order not found"})
        return httpx.Response(200, json=order)

    store = OrderStoreClient(httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://orders"))
    orchestrator = OrderOrchestrator(
        inventory=inventory, cart=cart, order_store=store,
        payment_gateway=payment_gateway, id_generator=id_generator,
    )

    result = await orchestrator.place_order(42, [RequestedItem(1001, 2)])
    await store.aclose()

    assert list(committed) == [result.order.order_id]
    assert result.order.total_amount == 1799800
    assert inventory.called("release_stock") == []
    assert inventory.stock[1001] == 97
