import os

# Must be set before any service module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("OBSERVABILITY_DISABLED", "1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.config.database import Base, get_db
from shared.idgen import SnowflakeGenerator
from services.payment_service.gateway import PaymentGateway
from services.orchestrator.service import OrderOrchestrator
from services.inventory_service import models as inventory_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.cart_service import models as cart_models  # noqa: F401
from tests.fakes import FakeCart, FakeInventory, FakeOrderStore, snapshot

INTERNAL_HEADERS = {"X-Internal-API-Key": "test-internal-key"}
EPOCH_MS = 1704067200000
APP_ID = "2021000000000001"


def _keypair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture(scope="session")
def merchant_keys():
    return _keypair()


@pytest.fixture(scope="session")
def gateway_keys():
    return _keypair()


@pytest.fixture
def payment_gateway(merchant_keys, gateway_keys):
    return PaymentGateway(
        app_id=APP_ID,
        private_key_pem=merchant_keys[0],
        gateway_public_key_pem=gateway_keys[1],
        gateway_url="https://pay.example/gateway.do",
        notify_url="https://shop.example/orchestrator/payments/notify",
        return_url="https://shop.example/orders/done",
    )


@pytest.fixture
def gateway_signer(merchant_keys, gateway_keys):
    """The gateway's side of the key exchange, used to sign notifications."""
    return PaymentGateway(
        app_id=APP_ID,
        private_key_pem=gateway_keys[0],
        gateway_public_key_pem=merchant_keys[1],
        gateway_url="https://pay.example/gateway.do",
        notify_url="",
    )


@pytest.fixture
def signed_notification(gateway_signer):
    def build(order_id, trade_status="TRADE_SUCCESS", **extra):
        params = {
            "app_id": APP_ID,
            "out_trade_no": str(order_id),
            "trade_no": "2026101822001400000000000001",
            "trade_status": trade_status,
            "total_amount": "17998.00",
            "notify_id": "notify-1",
            **extra,
        }
        params["sign_type"] = "RSA2"
        params["sign"] = gateway_signer.sign(params)
        return params
    return build


@pytest.fixture
def id_generator():
    ticks = iter(range(EPOCH_MS + 1000, EPOCH_MS + 10_000_000))
    return SnowflakeGenerator(worker_id=3, epoch_ms=EPOCH_MS, clock=lambda: next(ticks))


@pytest.fixture
def inventory():
    return FakeInventory([snapshot()])


@pytest.fixture
def cart():
    return FakeCart()


@pytest.fixture
def order_store():
    return FakeOrderStore()


@pytest.fixture
def orchestrator(inventory, cart, order_store, payment_gateway, id_generator):
    return OrderOrchestrator(
        inventory=inventory,
        cart=cart,
        order_store=order_store,
        payment_gateway=payment_gateway,
        id_generator=id_generator,
    )


# --- Database-backed service apps ---

@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        execution_options={
            "schema_translate_map": {"order_schema": None, "inventory_schema": None, "cart_schema": None}
        },
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def service_client(session_factory):
    """Builds an in-process httpx client for one of the FastAPI service apps."""
    clients = []

    async def override_get_db():
        async with session_factory() as session:
            yield session

    def build(app, headers=INTERNAL_HEADERS):
        app.dependency_overrides[get_db] = override_get_db
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver", headers=headers,
        )
        clients.append((app, client))
        return client

    yield build
    for app, client in clients:
        app.dependency_overrides.pop(get_db, None)
        await client.aclose()
