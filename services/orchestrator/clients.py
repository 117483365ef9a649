"""
httpx wrappers around the services the order saga depends on.

Every call goes through one shared ``httpx.AsyncClient`` per service, built
with the internal API key header and the cluster-wide call deadline.
Transport problems and unreadable response bodies surface as
``RemoteCallError``; a deadline hit surfaces
as its subclass ``RemoteTimeout`` so callers can tell "failed" from
"outcome unknown".
"""
from typing import Iterable, Optional

import httpx

from shared.config import settings
from shared.contracts import OrderStatus
from .domain import OrderHeader, OrderLineItem, SkuSnapshot


class RemoteCallError(Exception):
    def __init__(self, service: str, operation: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{service}.{operation} failed: {detail}")
        self.service = service
        self.operation = operation
        self.status_code = status_code


class RemoteTimeout(RemoteCallError):
    pass


class StockRejected(RemoteCallError):
    """Inventory refused the reservation (not enough stock at reservation time)."""


def build_http_client(base_url: str, timeout: Optional[float] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        headers=settings.API_HEADERS,
        timeout=timeout if timeout is not None else settings.REMOTE_CALL_TIMEOUT_SECONDS,
    )


class _ServiceClient:
    service = "remote"

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def _call(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteTimeout(self.service, operation, f"timed out ({type(e).__name__})") from e
        except httpx.HTTPError as e:
            raise RemoteCallError(self.service, operation, str(e) or type(e).__name__) from e

    def _fail(self, operation: str, resp: httpx.Response, error_cls=RemoteCallError):
        raise error_cls(self.service, operation, f"HTTP {resp.status_code}: {resp.text[:200]}",
                        status_code=resp.status_code)

    def _decode(self, operation: str, resp: httpx.Response, parse):
        """Applies ``parse`` to the JSON body; a malformed body is a failed call, not a crash."""
        try:
            return parse(resp.json())
        except (ValueError, KeyError, TypeError) as e:
            raise RemoteCallError(
                self.service, operation, f"unreadable response ({type(e).__name__}): {resp.text[:200]}",
                status_code=resp.status_code,
            ) from e

    async def aclose(self):
        await self.http.aclose()


class InventoryClient(_ServiceClient):
    service = "inventory"

    async def get_sku_snapshots(self, variant_ids: Iterable[int]) -> list[SkuSnapshot]:
        ids = sorted(set(variant_ids))
        resp = await self._call("get_sku_snapshots", "POST", "/skus/batch", json={"variant_ids": ids})
        if resp.status_code != 200:
            self._fail("get_sku_snapshots", resp)
        return self._decode("get_sku_snapshots", resp, lambda rows: [
            SkuSnapshot(
                variant_id=int(row["variant_id"]),
                product_id=int(row["product_id"]),
                unit_price=int(row["unit_price"]),
                available_stock=int(row["available_stock"]),
                title=row["title"],
                image_url=row.get("image_url"),
            )
            for row in rows
        ])

    async def reserve_stock(self, lines: Iterable[OrderLineItem]) -> None:
        payload = {"items": [{"variant_id": line.variant_id, "quantity": line.quantity} for line in lines]}
        resp = await self._call("reserve_stock", "POST", "/stock/reserve", json=payload)
        if resp.status_code == 409:
            self._fail("reserve_stock", resp, StockRejected)
        if resp.status_code != 200:
            self._fail("reserve_stock", resp)

    async def release_stock(self, lines: Iterable[OrderLineItem]) -> None:
        payload = {"items": [{"variant_id": line.variant_id, "quantity": line.quantity} for line in lines]}
        resp = await self._call("release_stock", "POST", "/stock/release", json=payload)
        if resp.status_code != 200:
            self._fail("release_stock", resp)


class CartClient(_ServiceClient):
    service = "cart"

    async def clear_items(self, user_id: int, variant_ids: Iterable[int]) -> None:
        payload = {"variant_ids": sorted(set(variant_ids))}
        resp = await self._call("clear_items", "POST", f"/{user_id}/items/clear", json=payload)
        if resp.status_code not in (200, 204):
            self._fail("clear_items", resp)


class OrderStoreClient(_ServiceClient):
    service = "order_store"

    async def create_order_atomic(self, header: OrderHeader, items: list[OrderLineItem]) -> OrderHeader:
        payload = {"header": header.to_dict(), "items": [item.to_dict() for item in items]}
        resp = await self._call("create_order_atomic", "POST", "/", json=payload)
        if resp.status_code not in (200, 201):
            self._fail("create_order_atomic", resp)
        return self._decode("create_order_atomic", resp, OrderHeader.from_dict)

    async def get_order(self, order_id: int) -> Optional[OrderHeader]:
        resp = await self._call("get_order", "GET", f"/{order_id}")
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            self._fail("get_order", resp)
        return self._decode("get_order", resp, OrderHeader.from_dict)

    async def update_status(self, order_id: int, expected: OrderStatus,
                            new: OrderStatus) -> Optional[tuple[bool, OrderStatus]]:
        """Compare-and-swap; ``None`` when the order does not exist."""
        payload = {"expected_status": int(expected), "new_status": int(new)}
        resp = await self._call("update_status", "POST", f"/{order_id}/status", json=payload)
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            self._fail("update_status", resp)
        return self._decode(
            "update_status", resp, lambda body: (bool(body["updated"]), OrderStatus(int(body["status"]))),
        )
