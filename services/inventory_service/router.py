from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key
from .schemas import SkuCreate, SkuSnapshotResponse, SkuBatchRequest, StockRequest
from .service import InventoryService, StockUnavailable

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()

@public_router.get("/health")
async def health_check():
    return {"service": "inventory", "status": "running"}


@router.post("/skus", response_model=SkuSnapshotResponse, status_code=201)
async def create_sku(sku: SkuCreate, db: AsyncSession = Depends(get_db)):
    created = await InventoryService.create_sku(db, sku)
    return SkuSnapshotResponse(
        variant_id=created.variant_id,
        product_id=created.product_id,
        unit_price=created.unit_price,
        available_stock=created.stock,
        title=created.title,
        image_url=created.image_url,
    )

@router.post("/skus/batch", response_model=list[SkuSnapshotResponse])
async def get_sku_snapshots(payload: SkuBatchRequest, db: AsyncSession = Depends(get_db)):
    # Unknown ids are simply absent from the response
    return await InventoryService.get_snapshots(db, payload.variant_ids)

@router.post("/stock/reserve")
async def reserve_stock(payload: StockRequest, db: AsyncSession = Depends(get_db)):
    try:
        await InventoryService.reserve(db, payload.items)
    except StockUnavailable as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "variant_id": e.variant_id})
    return {"message": "Stock reserved"}

@router.post("/stock/release")
async def release_stock(payload: StockRequest, db: AsyncSession = Depends(get_db)):
    await InventoryService.release(db, payload.items)
    return {"message": "Stock released"}
