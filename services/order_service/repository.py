from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from .models import Order, OrderItem


class OrderRepository:
    @staticmethod
    async def create_order_atomic(db: AsyncSession, order: Order, items: list[OrderItem]):
        """Header and items share one transaction: both land or neither does."""
        order.items = items
        db.add(order)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        # Reload server-side defaults (created_at) along with the items
        result = await db.execute(
            select(Order)
            .where(Order.order_id == order.order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().one()

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        result = await db.execute(select(Order).where(Order.order_id == order_id))
        return result.scalars().first()

    @staticmethod
    async def compare_and_set_status(db: AsyncSession, order_id: int, expected: int, new: int) -> bool:
        """Moves the order to ``new`` only if it is currently ``expected``."""
        stmt = (
            update(Order)
            .where(Order.order_id == order_id, Order.status == expected)
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount == 1

    @staticmethod
    async def get_status(db: AsyncSession, order_id: int):
        result = await db.execute(select(Order.status).where(Order.order_id == order_id))
        return result.scalar_one_or_none()
