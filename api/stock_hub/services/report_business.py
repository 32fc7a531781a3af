# stock_hub/services/report_business.py
"""
Report Business Service - fetches through the facade, aggregates locally.

A report is degraded when any of the fetches behind it was degraded; the
numbers are then computed over whatever came back (empty lists, zeros).
"""
from __future__ import annotations
import logging
from typing import Optional

from stock_hub.clients.resilient import Degradable, ResilientCatalogFacade
from stock_hub.context import CallContext
from stock_hub.models import AlertReport, CategoryReport, FinancialReport, InventoryStats, StockStateReport
from stock_hub.services.reports import ReportAggregator
from stock_hub.settings import settings

logger = logging.getLogger(__name__)


class ReportBusinessService:
    def __init__(self, facade: ResilientCatalogFacade, aggregator: Optional[ReportAggregator] = None):
        self.facade = facade
        self.aggregator = aggregator or ReportAggregator(top_n=settings.REPORT_TOP_N)

    async def stock_state(self, ctx: CallContext) -> StockStateReport:
        logger.info(f"[{ctx.request_id}] Building stock state report")
        ledgers = await self.facade.list_ledgers(ctx)
        report = self.aggregator.stock_state(ledgers.value, degraded=ledgers.degraded)
        logger.info(f"[{ctx.request_id}] Stock state report: {report.total_products} products, "
                    f"value {report.total_value}")
        return report

    async def summary(self, ctx: CallContext) -> Degradable[InventoryStats]:
        return await self.facade.inventory_statistics(ctx)

    async def categories(self, ctx: CallContext) -> CategoryReport:
        logger.info(f"[{ctx.request_id}] Building category report")
        categories = await self.facade.list_categories(ctx)
        stats = await self.facade.category_statistics(ctx)
        return self.aggregator.category_distribution(
            stats.value,
            total_categories=len(categories.value),
            degraded=categories.degraded or stats.degraded,
        )

    async def alerts(self, ctx: CallContext) -> AlertReport:
        logger.info(f"[{ctx.request_id}] Building alert report")
        out_of_stock = await self.facade.out_of_stock(ctx)
        critical = await self.facade.critical_stock(ctx)
        low = await self.facade.low_stock(ctx)
        replenishment = await self.facade.replenishment(ctx)
        report = self.aggregator.alerts(
            out_of_stock.value, critical.value, low.value, replenishment.value,
            degraded=any(r.degraded for r in (out_of_stock, critical, low, replenishment)),
        )
        if report.total_alerts:
            logger.warning(
                f"[{ctx.request_id}] Stock alerts: {len(report.out_of_stock)} out of stock, "
                f"{len(report.critical)} critical, {len(report.low)} low"
            )
        return report

    async def financial(self, ctx: CallContext) -> FinancialReport:
        logger.info(f"[{ctx.request_id}] Building financial report")
        total = await self.facade.total_value(ctx)
        values = await self.facade.inventory_value_per_product(ctx)
        stats = await self.facade.category_statistics(ctx)
        return self.aggregator.financial(
            values.value, stats.value,
            total_value=total.value,
            degraded=total.degraded or values.degraded or stats.degraded,
        )
