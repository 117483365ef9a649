import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from .models import CartItem
from .repository import CartRepository
from .schemas import CartItemCreate, CartItemResponse, CartResponse

logger = structlog.get_logger(__name__)

class CartService:
    @staticmethod
    async def get_cart(db: AsyncSession, user_id: int) -> CartResponse:
        items = await CartRepository.get_items(db, user_id)
        return CartResponse(
            user_id=user_id, items=[CartItemResponse.model_validate(item) for item in items]
        )

    @staticmethod
    async def add_item(db: AsyncSession, user_id: int, data: CartItemCreate) -> CartResponse:
        await CartRepository.add_item(
            db, CartItem(user_id=user_id, variant_id=data.variant_id, quantity=data.quantity)
        )
        return await CartService.get_cart(db, user_id)

    @staticmethod
    async def clear_items(db: AsyncSession, user_id: int, variant_ids: list[int]):
        # Removing variants that are not in the cart is not an error
        removed = await CartRepository.remove_items(db, user_id, variant_ids)
        logger.info("cart_items_cleared", user_id=user_id, variant_ids=variant_ids, removed=removed)
