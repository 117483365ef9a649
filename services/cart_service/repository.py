from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from .models import CartItem

class CartRepository:
    @staticmethod
    async def get_items(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.variant_id)
        )
        return result.scalars().all()

    @staticmethod
    async def add_item(db: AsyncSession, item: CartItem):
        existing = await db.get(CartItem, (item.user_id, item.variant_id))
        if existing:
            existing.quantity += item.quantity
        else:
            db.add(item)
        await db.commit()

    @staticmethod
    async def remove_items(db: AsyncSession, user_id: int, variant_ids: list[int]) -> int:
        stmt = delete(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.variant_id.in_(variant_ids),
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount
