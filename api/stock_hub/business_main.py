# stock_hub/business_main.py
# Stock Hub business tier - enrichment and reports on top of the data service
from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stock_hub.settings import settings
from stock_hub.clients.catalog_client import RemoteCatalogClient
from stock_hub.clients.resilient import ResilientCatalogFacade
from stock_hub.exception_handlers import setup_exception_handlers
from stock_hub.routers.business import router as business_router
from stock_hub.routers.reports import router as reports_router

# ---------------------------------------------------------
# Logging setup
# ---------------------------------------------------------
from stock_hub.logging_setup import setup_logging
setup_logging(settings, name="business_service")

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Lifespan: data service client
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    client = RemoteCatalogClient(settings.DATA_SERVICE_URL, timeout=settings.DATA_SERVICE_TIMEOUT)
    app.state.facade = ResilientCatalogFacade(client)
    logger.info(f"Business service started, data service at {settings.DATA_SERVICE_URL}")
    yield
    await client.aclose()
    logger.info("Business service stopped")


app = FastAPI(
    title="Stock Hub Business Service",
    version="1.0.0",
    description="Product enrichment, stock operations and inventory reports",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_exception_handlers(app)

app.include_router(business_router)
app.include_router(reports_router)
