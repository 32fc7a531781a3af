# stock_hub/services/reports.py
"""
Report Aggregator - pure computations over already-fetched snapshots.

No I/O here. The business tier fetches (possibly degraded) data through the
facade and hands it over; an empty input yields a report of zeros, never an
error.
"""
from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from stock_hub.models import (
    AlertReport, CategoryReport, CategoryStats, FinancialReport,
    LedgerOut, ProductValue, StockStateReport,
)
from stock_hub.services.ledger import StockStatus, classify

NOT_AVAILABLE = "N/A"
ZERO = Decimal("0")
CENT = Decimal("0.01")


def percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return part / total * 100.0


def average(total: Decimal, count: int) -> Decimal:
    """total / count rounded half-up to cents, zero for an empty set."""
    if count == 0:
        return ZERO.quantize(CENT)
    return (Decimal(total) / Decimal(count)).quantize(CENT, rounding=ROUND_HALF_UP)


def first_max(values: Mapping[str, object]) -> str:
    """Key of the largest value; on ties the first key in iteration order wins."""
    best_key: Optional[str] = None
    best_value = None
    for key, value in values.items():
        if best_key is None or value > best_value:
            best_key, best_value = key, value
    return best_key if best_key is not None else NOT_AVAILABLE


def _sum_values(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


class ReportAggregator:
    """Builds the four business reports. Every method is deterministic."""

    def __init__(self, top_n: int = 10):
        self.top_n = top_n

    # =========================================================================
    # Stock state
    # =========================================================================

    def stock_state(self, ledgers: Sequence[LedgerOut], degraded: bool = False) -> StockStateReport:
        counts: Dict[StockStatus, int] = {status: 0 for status in StockStatus}
        for ledger in ledgers:
            counts[classify(ledger.quantity, ledger.threshold)] += 1

        total = len(ledgers)
        total_value = _sum_values(l.inventory_value for l in ledgers)
        return StockStateReport(
            total_products=total,
            normal=counts[StockStatus.NORMAL],
            low=counts[StockStatus.BAJO],
            critical=counts[StockStatus.CRITICO],
            out_of_stock=counts[StockStatus.SIN_STOCK],
            percent_normal=percentage(counts[StockStatus.NORMAL], total),
            percent_low=percentage(counts[StockStatus.BAJO], total),
            percent_critical=percentage(counts[StockStatus.CRITICO], total),
            percent_out_of_stock=percentage(counts[StockStatus.SIN_STOCK], total),
            total_value=total_value,
            average_value=average(total_value, total),
            ledgers=list(ledgers),
            degraded=degraded,
        )

    # =========================================================================
    # Category distribution
    # =========================================================================

    def category_distribution(self, stats: Sequence[CategoryStats], total_categories: Optional[int] = None,
                              degraded: bool = False) -> CategoryReport:
        products_per_category: Dict[str, int] = {}
        value_per_category: Dict[str, Decimal] = {}
        for stat in stats:
            products_per_category[stat.name] = products_per_category.get(stat.name, 0) + stat.product_count
            value_per_category[stat.name] = value_per_category.get(stat.name, ZERO) + (stat.total_value or ZERO)

        return CategoryReport(
            total_categories=total_categories if total_categories is not None else len(products_per_category),
            total_products=sum(products_per_category.values()),
            total_value=_sum_values(value_per_category.values()),
            products_per_category=products_per_category,
            value_per_category=value_per_category,
            category_with_most_products=first_max(products_per_category),
            category_with_highest_value=first_max(value_per_category),
            degraded=degraded,
        )

    # =========================================================================
    # Alerts
    # =========================================================================

    def alerts(self, out_of_stock: Sequence[LedgerOut], critical: Sequence[LedgerOut],
               low: Sequence[LedgerOut], replenishment: Sequence[LedgerOut] = (),
               degraded: bool = False) -> AlertReport:
        """
        Impact is the inventory value still held by each list, so the
        out-of-stock impact is always zero; it is not a lost-sales estimate.
        """
        return AlertReport(
            out_of_stock=list(out_of_stock),
            critical=list(critical),
            low=list(low),
            replenishment=list(replenishment),
            total_alerts=len(out_of_stock) + len(critical) + len(low),
            impact_out_of_stock=_sum_values(l.inventory_value for l in out_of_stock),
            impact_critical=_sum_values(l.inventory_value for l in critical),
            recommendations=self.recommendations(len(out_of_stock), len(critical), len(low)),
            degraded=degraded,
        )

    @staticmethod
    def recommendations(out_of_stock: int, critical: int, low: int) -> Dict[str, str]:
        # each rule fires on its own list; none excludes another
        result: Dict[str, str] = {}
        if out_of_stock > 0:
            result["urgente"] = f"Restock {out_of_stock} out-of-stock product(s) immediately"
        if critical > 0:
            result["critico"] = f"Plan replenishment for {critical} product(s) with critical stock"
        if low > 0:
            result["preventivo"] = f"Monitor {low} product(s) with low stock"
        return result

    # =========================================================================
    # Financial
    # =========================================================================

    def financial(self, values: Sequence[ProductValue], stats: Sequence[CategoryStats] = (),
                  total_value: Optional[Decimal] = None, degraded: bool = False) -> FinancialReport:
        if total_value is None:
            total_value = _sum_values(v.total_value for v in values)
        return FinancialReport(
            total_value=total_value,
            average_value_per_product=average(total_value, len(values)),
            top_products=self.top_products(values),
            value_per_category={s.name: s.total_value or ZERO for s in stats},
            degraded=degraded,
        )

    def top_products(self, values: Sequence[ProductValue]) -> List[ProductValue]:
        # sorted() is stable, reverse included: ties keep input order
        return sorted(values, key=lambda v: v.total_value, reverse=True)[: self.top_n]
