from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Sku

class SkuRepository:

    @staticmethod
    async def create_sku(db: AsyncSession, sku: Sku):
        db.add(sku)
        await db.commit()
        await db.refresh(sku)
        return sku

    @staticmethod
    async def get_skus(db: AsyncSession, variant_ids: list[int]):
        result = await db.execute(select(Sku).where(Sku.variant_id.in_(variant_ids)))
        return result.scalars().all()

    @staticmethod
    async def lock_skus(db: AsyncSession, variant_ids: list[int]):
        """Row-locks the SKUs in a fixed order so concurrent reservations never deadlock."""
        result = await db.execute(
            select(Sku)
            .where(Sku.variant_id.in_(variant_ids))
            .order_by(Sku.variant_id)
            .with_for_update()
        )
        return {sku.variant_id: sku for sku in result.scalars().all()}
