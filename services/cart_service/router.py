from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .schemas import CartItemCreate, CartResponse, ClearItemsRequest
from .service import CartService

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "cart", "status": "running"}


@router.get("/{user_id}", response_model=CartResponse)
async def get_cart(user_id: int, db: AsyncSession = Depends(get_db)):
    return await CartService.get_cart(db, user_id)


@router.post("/{user_id}/items", response_model=CartResponse)
async def add_item(user_id: int, item: CartItemCreate, db: AsyncSession = Depends(get_db)):
    return await CartService.add_item(db, user_id, item)


@router.post("/{user_id}/items/clear", status_code=204)
async def clear_items(user_id: int, payload: ClearItemsRequest, db: AsyncSession = Depends(get_db)):
    """Removes the given variants from the user's cart."""
    await CartService.clear_items(db, user_id, payload.variant_ids)
