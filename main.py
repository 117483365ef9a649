from fastapi import FastAPI
from sqlalchemy import text
from shared.config.database import engine, Base

# IMPORTANT: import models so they register with Base
from services.inventory_service import models as inventory_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401
from services.cart_service import models as cart_models  # noqa: F401

from services.inventory_service.main import inventory_app
from services.order_service.main import order_app
from services.cart_service.main import cart_app
from services.orchestrator.main import app as orchestrator_app
from services.orchestrator.main import startup_event as wire_orchestrator, shutdown_event as close_orchestrator

app = FastAPI(title="Ecommerce Cluster")

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        # Create schemas
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS inventory_schema"))
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS order_schema"))
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS cart_schema"))

        # Create all tables
        await conn.run_sync(Base.metadata.create_all)

# Mounted sub-apps do not receive lifespan events; run the orchestrator's wiring here
@app.on_event("startup")
async def orchestrator_startup():
    await wire_orchestrator()

@app.on_event("shutdown")
async def orchestrator_shutdown():
    await close_orchestrator()

app.mount("/inventory", inventory_app)
app.mount("/orders", order_app)
app.mount("/cart", cart_app)
app.mount("/orchestrator", orchestrator_app)
