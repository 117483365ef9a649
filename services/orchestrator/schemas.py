from typing import Any, List, Optional
from pydantic import BaseModel

# Quantities and emptiness are validated by the orchestrator itself so the
# caller gets the order-domain error codes.
class PlaceOrderItem(BaseModel):
    variant_id: int
    quantity: int

class PlaceOrderRequest(BaseModel):
    items: List[PlaceOrderItem]
    shipping_address: Optional[dict[str, Any]] = None

class OrderLineResponse(BaseModel):
    variant_id: int
    product_id: int
    title: str
    image_url: Optional[str]
    unit_price: int
    quantity: int
    subtotal: int

class PlaceOrderResponse(BaseModel):
    order_id: int
    total_amount: int
    payment_amount: int
    status: int
    items: List[OrderLineResponse] = []
    cart_cleared: bool
    correlation_id: str

class PaymentURLResponse(BaseModel):
    order_id: int
    url: str
