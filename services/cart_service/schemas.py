from typing import List
from pydantic import BaseModel, Field

class CartItemCreate(BaseModel):
    variant_id: int
    quantity: int = Field(gt=0)

class CartItemResponse(BaseModel):
    variant_id: int
    quantity: int

    class Config:
        from_attributes = True

class CartResponse(BaseModel):
    user_id: int
    items: List[CartItemResponse] = []

class ClearItemsRequest(BaseModel):
    variant_ids: List[int] = Field(min_length=1)
