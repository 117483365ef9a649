import uuid
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from shared.config import settings
from shared.idgen import SnowflakeGenerator
from shared.security import limiter
from shared.observability import setup_observability
from services.payment_service.gateway import PaymentGateway
from .clients import CartClient, InventoryClient, OrderStoreClient, build_http_client
from .errors import OrderSagaError
from .router import router
from .service import OrderOrchestrator

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Orchestrator Service",
    version="2.0.0"
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "orchestrator_service")

# --- SECURITY SETUP ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def order_saga_error_handler(request: Request, exc: OrderSagaError):
    if exc.correlation_id is None:
        exc.correlation_id = getattr(request.state, "correlation_id", None)
    if not exc.expose_detail:
        # Full context for operators; users only see the generic body
        logger.error("order_request_failed", error=type(exc).__name__, step=exc.step,
                     detail=exc.message, context=exc.context)
    return JSONResponse(status_code=exc.http_status, content=exc.public_body())

app.add_exception_handler(OrderSagaError, order_saga_error_handler)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.correlation_id = correlation_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = correlation_id
    return response


@app.on_event("startup")
async def startup_event():
    # One id generator per process, one pooled http client per collaborator
    app.state.orchestrator = OrderOrchestrator(
        inventory=InventoryClient(build_http_client(settings.INVENTORY_URL)),
        cart=CartClient(build_http_client(settings.CART_URL)),
        order_store=OrderStoreClient(build_http_client(settings.ORDER_URL)),
        payment_gateway=PaymentGateway.from_settings(),
        id_generator=SnowflakeGenerator(
            worker_id=settings.ORDER_ID_WORKER_ID, epoch_ms=settings.ORDER_ID_EPOCH_MS,
        ),
    )


@app.on_event("shutdown")
async def shutdown_event():
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is None:
        return
    for client in (orchestrator.inventory, orchestrator.cart, orchestrator.order_store):
        await client.aclose()


app.include_router(router)
