from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key
from .schemas import OrderCreate, OrderResponse, StatusUpdate, StatusUpdateResponse
from .service import OrderService, OrderAlreadyExists, InvalidStatus

# Only the orchestrator talks to the order store
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}

@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order: OrderCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await OrderService.create_order(db, order)
    except OrderAlreadyExists as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidStatus as e:
        raise HTTPException(status_code=422, detail=str(e))

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderService.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

@router.post("/{order_id}/status", response_model=StatusUpdateResponse)
async def update_status(order_id: int, payload: StatusUpdate, db: AsyncSession = Depends(get_db)):
    try:
        result = await OrderService.update_status(db, order_id, payload.expected_status, payload.new_status)
    except InvalidStatus as e:
        raise HTTPException(status_code=422, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Order not found")
    updated, current = result
    return StatusUpdateResponse(order_id=order_id, updated=updated, status=current)
