# stock_hub/routers/reports.py
from __future__ import annotations
from fastapi import APIRouter, Depends

from stock_hub.context import CallContext
from stock_hub.models import (
    AlertReport, CategoryReport, Envelope, FinancialReport, InventoryStats, StockStateReport,
)
from stock_hub.routers.deps import envelope, get_call_context, get_reports
from stock_hub.services.report_business import ReportBusinessService

router = APIRouter(prefix="/business/reportes", tags=["Reports"])


@router.get("/inventario", response_model=StockStateReport)
async def stock_state_report(ctx: CallContext = Depends(get_call_context),
                             reports: ReportBusinessService = Depends(get_reports)):
    return await reports.stock_state(ctx)


@router.get("/categorias", response_model=CategoryReport)
async def category_report(ctx: CallContext = Depends(get_call_context),
                          reports: ReportBusinessService = Depends(get_reports)):
    return await reports.categories(ctx)


@router.get("/alertas", response_model=AlertReport)
async def alert_report(ctx: CallContext = Depends(get_call_context),
                       reports: ReportBusinessService = Depends(get_reports)):
    return await reports.alerts(ctx)


@router.get("/financiero", response_model=FinancialReport)
async def financial_report(ctx: CallContext = Depends(get_call_context),
                           reports: ReportBusinessService = Depends(get_reports)):
    return await reports.financial(ctx)


@router.get("/resumen", response_model=Envelope[InventoryStats])
async def inventory_summary(ctx: CallContext = Depends(get_call_context),
                            reports: ReportBusinessService = Depends(get_reports)):
    return envelope(await reports.summary(ctx), ctx)
