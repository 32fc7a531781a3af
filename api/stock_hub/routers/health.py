# stock_hub/routers/health.py
from __future__ import annotations
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from stock_hub.database import check_db_health

router = APIRouter(prefix="/data", tags=["Health"])

SERVICE_NAME = "data-service"


@router.get("/health")
async def health():
    """Health check endpoint with database status."""
    db_health = await check_db_health()
    if db_health.get("status") != "healthy":
        return JSONResponse(
            status_code=503,
            content={"status": "DOWN", "service": SERVICE_NAME, "database": db_health},
        )
    return {"status": "UP", "service": SERVICE_NAME, "database": db_health}
