from typing import List, Optional
from pydantic import BaseModel, Field

class SkuCreate(BaseModel):
    variant_id: int
    product_id: int
    title: str
    image_url: Optional[str] = None
    unit_price: int = Field(ge=0)
    stock: int = Field(ge=0)

class SkuSnapshotResponse(BaseModel):
    variant_id: int
    product_id: int
    unit_price: int
    available_stock: int
    title: str
    image_url: Optional[str]

class SkuBatchRequest(BaseModel):
    variant_ids: List[int] = Field(min_length=1)

class StockItem(BaseModel):
    variant_id: int
    quantity: int = Field(gt=0)

class StockRequest(BaseModel):
    items: List[StockItem] = Field(min_length=1)
