from typing import Any, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class OrderItemIn(BaseModel):
    variant_id: int
    product_id: int
    title: str
    image_url: Optional[str] = None
    unit_price: int = Field(ge=0)
    quantity: int = Field(gt=0)
    subtotal: int = Field(ge=0)

    @model_validator(mode="after")
    def check_subtotal(self):
        if self.subtotal != self.unit_price * self.quantity:
            raise ValueError(
                f"subtotal {self.subtotal} != unit_price * quantity for variant {self.variant_id}"
            )
        return self


class OrderHeaderIn(BaseModel):
    order_id: int = Field(gt=0)
    user_id: int
    total_amount: int = Field(ge=0)
    payment_amount: int = Field(ge=0)
    shipping_fee: int = Field(default=0, ge=0)
    status: int
    shipping_address: Optional[dict[str, Any]] = None


class OrderCreate(BaseModel):
    header: OrderHeaderIn
    items: List[OrderItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def check_totals(self):
        total = sum(item.subtotal for item in self.items)
        if total != self.header.total_amount:
            raise ValueError(f"total_amount {self.header.total_amount} != sum of subtotals {total}")
        variant_ids = [item.variant_id for item in self.items]
        if len(set(variant_ids)) != len(variant_ids):
            raise ValueError("duplicate variant_id in order items")
        return self


class OrderItemResponse(BaseModel):
    variant_id: int
    product_id: int
    title: str
    image_url: Optional[str]
    unit_price: int
    quantity: int
    subtotal: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    order_id: int
    user_id: int
    total_amount: int
    payment_amount: int
    shipping_fee: int
    status: int
    shipping_address: Optional[dict[str, Any]]
    created_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    expected_status: int
    new_status: int


class StatusUpdateResponse(BaseModel):
    order_id: int
    updated: bool
    status: int
