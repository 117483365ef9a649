from fastapi import FastAPI
from sqlalchemy import text
from shared.config.database import engine, Base
from shared.observability import setup_observability
from .router import router, public_router
from .models import Sku  # noqa: F401 — registers model with Base

inventory_app = FastAPI(
    title="Inventory Service",
    version="2.0.0"
)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(inventory_app, "inventory_service")

inventory_app.include_router(public_router)
inventory_app.include_router(router)

@inventory_app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.execute(text("CREATE SCHEMA IF NOT EXISTS inventory_schema"))
        await conn.run_sync(Base.metadata.create_all)
