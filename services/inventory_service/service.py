from collections import Counter
import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Sku
from .repository import SkuRepository
from .schemas import SkuCreate, StockItem

logger = structlog.get_logger(__name__)


class StockUnavailable(ValueError):
    def __init__(self, variant_id: int, message: str):
        super().__init__(message)
        self.variant_id = variant_id


def _merge(items: list[StockItem]) -> Counter:
    totals = Counter()
    for item in items:
        totals[item.variant_id] += item.quantity
    return totals


class InventoryService:

    @staticmethod
    async def create_sku(db: AsyncSession, data: SkuCreate):
        return await SkuRepository.create_sku(db, Sku(**data.model_dump()))

    @staticmethod
    async def get_snapshots(db: AsyncSession, variant_ids: list[int]):
        skus = await SkuRepository.get_skus(db, sorted(set(variant_ids)))
        return [
            {
                "variant_id": sku.variant_id,
                "product_id": sku.product_id,
                "unit_price": sku.unit_price,
                "available_stock": sku.stock,
                "title": sku.title,
                "image_url": sku.image_url,
            }
            for sku in skus
        ]

    @staticmethod
    async def reserve(db: AsyncSession, items: list[StockItem]):
        """All-or-nothing: either every line is deducted or none is."""
        wanted = _merge(items)
        try:
            skus = await SkuRepository.lock_skus(db, list(wanted))
            for variant_id, quantity in sorted(wanted.items()):
                sku = skus.get(variant_id)
                if sku is None:
                    raise StockUnavailable(variant_id, f"SKU {variant_id} not found")
                if sku.stock < quantity:
                    raise StockUnavailable(variant_id, f"Insufficient stock for SKU {variant_id}")
                sku.stock -= quantity
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("stock_reserved", items=dict(wanted))

    @staticmethod
    async def release(db: AsyncSession, items: list[StockItem]):
        """Returns previously reserved quantities. Unknown SKUs are skipped."""
        returned = _merge(items)
        try:
            skus = await SkuRepository.lock_skus(db, list(returned))
            for variant_id, quantity in returned.items():
                sku = skus.get(variant_id)
                if sku is None:
                    logger.warning("release_unknown_sku", variant_id=variant_id)
                    continue
                sku.stock += quantity
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("stock_released", items=dict(returned))
