from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from shared.security import get_current_user, limiter, PLACE_ORDER_RATE_LIMIT
from .domain import RequestedItem
from .errors import InvalidSignature
from .schemas import OrderLineResponse, PaymentURLResponse, PlaceOrderRequest, PlaceOrderResponse
from .service import OrderOrchestrator

router = APIRouter()

# Literal acknowledgements expected by the payment gateway
GATEWAY_ACK = "success"
GATEWAY_NACK = "fail"


def get_orchestrator(request: Request) -> OrderOrchestrator:
    return request.app.state.orchestrator


@router.get("/health")
async def health_check():
    return {"service": "orchestrator", "status": "running"}


@router.post("/orders", response_model=PlaceOrderResponse, status_code=201)
@limiter.limit(PLACE_ORDER_RATE_LIMIT)
async def place_order(
    request: Request,                          # slowapi needs this to check IP/Headers
    payload: PlaceOrderRequest,
    user_id: int = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.place_order(
        user_id=user_id,
        items=[RequestedItem(variant_id=i.variant_id, quantity=i.quantity) for i in payload.items],
        shipping_address=payload.shipping_address,
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    order = result.order
    return PlaceOrderResponse(
        order_id=order.order_id,
        total_amount=order.total_amount,
        payment_amount=order.payment_amount,
        status=int(order.status),
        items=[OrderLineResponse(**line.to_dict()) for line in order.items],
        cart_cleared=result.cart_cleanup.ok,
        correlation_id=result.correlation_id,
    )


@router.get("/orders/{order_id}/payment_url", response_model=PaymentURLResponse)
async def get_payment_url(
    order_id: int,
    user_id: int = Depends(get_current_user),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    url = await orchestrator.get_payment_url(user_id, order_id)
    return PaymentURLResponse(order_id=order_id, url=url)


@router.post("/payments/notify", response_class=PlainTextResponse)
async def payment_notification(
    request: Request,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    """Gateway webhook. Trust comes from the payload signature, not the caller."""
    form = await request.form()
    payload = {key: str(value) for key, value in form.items()}
    try:
        await orchestrator.confirm_payment(payload)
    except InvalidSignature:
        return PlainTextResponse(GATEWAY_NACK, status_code=400)
    return PlainTextResponse(GATEWAY_ACK)
