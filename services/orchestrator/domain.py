from dataclasses import dataclass, field, asdict
from typing import Any, Optional

from shared.contracts import OrderStatus


@dataclass(frozen=True)
class RequestedItem:
    variant_id: int
    quantity: int


@dataclass(frozen=True)
class SkuSnapshot:
    variant_id: int
    product_id: int
    unit_price: int
    available_stock: int
    title: str
    image_url: Optional[str] = None


@dataclass(frozen=True)
class OrderLineItem:
    variant_id: int
    product_id: int
    title: str
    image_url: Optional[str]
    unit_price: int
    quantity: int

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity

    @classmethod
    def from_snapshot(cls, snapshot: SkuSnapshot, quantity: int) -> "OrderLineItem":
        # Price and title are frozen from the snapshot, never from the caller
        return cls(
            variant_id=snapshot.variant_id,
            product_id=snapshot.product_id,
            title=snapshot.title,
            image_url=snapshot.image_url,
            unit_price=snapshot.unit_price,
            quantity=quantity,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["subtotal"] = self.subtotal
        return data


@dataclass
class OrderHeader:
    order_id: int
    user_id: int
    total_amount: int
    payment_amount: int
    shipping_fee: int = 0
    status: OrderStatus = OrderStatus.AWAITING_PAYMENT
    shipping_address: Optional[dict[str, Any]] = None
    items: list[OrderLineItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "total_amount": self.total_amount,
            "payment_amount": self.payment_amount,
            "shipping_fee": self.shipping_fee,
            "status": int(self.status),
            "shipping_address": self.shipping_address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrderHeader":
        return cls(
            order_id=int(data["order_id"]),
            user_id=int(data["user_id"]),
            total_amount=int(data["total_amount"]),
            payment_amount=int(data["payment_amount"]),
            shipping_fee=int(data.get("shipping_fee", 0)),
            status=OrderStatus(int(data["status"])),
            shipping_address=data.get("shipping_address"),
            items=[
                OrderLineItem(
                    variant_id=int(item["variant_id"]),
                    product_id=int(item["product_id"]),
                    title=item["title"],
                    image_url=item.get("image_url"),
                    unit_price=int(item["unit_price"]),
                    quantity=int(item["quantity"]),
                )
                for item in data.get("items", [])
            ],
        )


@dataclass(frozen=True)
class StepOutcome:
    """Result of a best-effort step; a failed outcome never fails the saga."""
    step: str
    ok: bool
    error: Optional[Exception] = None


@dataclass
class PlacementResult:
    order: OrderHeader
    cart_cleanup: StepOutcome
    correlation_id: str


@dataclass(frozen=True)
class ConfirmationResult:
    order_id: Optional[int]
    # 'applied', 'duplicate' or 'ignored'
    outcome: str
