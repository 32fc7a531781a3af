# stock_hub/main.py
# Stock Hub data tier - store of record for products, categories and stock ledgers
from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stock_hub.settings import settings
from stock_hub.database import init_db, close_db, create_tables
from stock_hub.exception_handlers import setup_exception_handlers
from stock_hub.routers.products import router as products_router
from stock_hub.routers.categories import router as categories_router
from stock_hub.routers.inventory import router as inventory_router
from stock_hub.routers.health import router as health_router

# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
from stock_hub.logging_setup import setup_logging
setup_logging(settings, name="data_service")

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Lifespan: Database init/cleanup
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    await create_tables()
    logger.info("Data service started, database ready")
    yield
    await close_db()
    logger.info("Data service stopped, database disconnected")


# ---------------------------------------------------------
# FastAPI app + CORS
# ---------------------------------------------------------
app = FastAPI(
    title="Stock Hub Data Service",
    version="1.0.0",
    description="Products, categories and revision-guarded stock ledgers",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_exception_handlers(app)

app.include_router(health_router)
app.include_router(products_router)
app.include_router(categories_router)
app.include_router(inventory_router)
