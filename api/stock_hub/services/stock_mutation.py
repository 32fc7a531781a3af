# stock_hub/services/stock_mutation.py
"""
Stock Mutation Service - the only writer of stock ledgers.

Handles:
- Ledger creation (one per product)
- set / increase / decrease / threshold / full update, each a
  read-check-write cycle guarded by the ledger revision
- Bounded retry when a concurrent writer wins the compare-and-swap
- Read-only queries (status filters, statistics, inventory value)

Mutations return a ``MutationResult`` instead of raising for the expected
business outcomes (insufficient stock, lost revision race). Malformed input
still raises ``InvalidArgument`` and unknown products raise ``NotFound``.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stock_hub.database import transaction
from stock_hub.db_models import Category, Product, StockLedgerRecord
from stock_hub.errors import (
    AlreadyExists, ConcurrencyConflict, InsufficientStock, InvalidArgument, NotFound, StockHubError,
)
from stock_hub.models import InventoryStats, LedgerOut
from stock_hub.services.ledger import (
    CRITICAL_STATUSES, LOW_STATUSES, StockLedger, StockStatus, crossed_into_critical,
)
from stock_hub.services.stock_store import SqlLedgerStore
from stock_hub.settings import settings

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class MutationStatus(str, enum.Enum):
    APPLIED = "applied"
    INSUFFICIENT_STOCK = "insufficient_stock"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of one stock mutation call.

    ``ledger`` is the new state when applied, otherwise the last state read.
    """
    status: MutationStatus
    ledger: StockLedger
    previous_status: StockStatus
    attempts: int = 1
    error: Optional[StockHubError] = None

    @property
    def applied(self) -> bool:
        return self.status is MutationStatus.APPLIED

    @property
    def stock_status(self) -> StockStatus:
        return self.ledger.status

    @property
    def crossed_into_critical(self) -> bool:
        return self.applied and crossed_into_critical(self.previous_status, self.ledger.status)

    def unwrap(self) -> StockLedger:
        """Return the new ledger or raise the error that prevented the mutation."""
        if not self.applied:
            raise self.error
        return self.ledger


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT)


def ledger_out(ledger: StockLedger, product: Optional[Product] = None) -> LedgerOut:
    """Compose the wire view of a ledger with its product's catalog data."""
    price = product.price if product is not None else None
    category = product.category if product is not None else None
    return LedgerOut(
        id=ledger.id,
        product_id=ledger.product_id,
        product_name=product.name if product is not None else None,
        product_price=price,
        category_name=category.name if category is not None else None,
        quantity=ledger.quantity,
        threshold=ledger.threshold,
        revision=ledger.revision,
        status=ledger.status,
        needs_replenishment=ledger.needs_replenishment,
        inventory_value=money(price * ledger.quantity) if price is not None else Decimal("0.00"),
        created_at=ledger.created_at,
        updated_at=ledger.updated_at,
    )


def record_out(record: StockLedgerRecord) -> LedgerOut:
    return ledger_out(record.to_ledger(), record.product)


class StockMutationService:
    """Create, mutate and query stock ledgers."""

    def __init__(self, db: AsyncSession, store: Optional[SqlLedgerStore] = None,
                 max_attempts: Optional[int] = None):
        self.db = db
        self.store = store or SqlLedgerStore(db)
        self.max_attempts = max_attempts or settings.STOCK_MUTATION_MAX_ATTEMPTS

    # =========================================================================
    # Creation
    # =========================================================================

    async def create(self, product_id: int, initial_quantity: int,
                     threshold: Optional[int] = None) -> StockLedger:
        """Create the ledger for ``product_id`` at revision 0 (no commit)."""
        logger.info(f"Creating stock ledger for product {product_id}")
        if initial_quantity is None or initial_quantity < 0:
            raise InvalidArgument("initial quantity cannot be negative", quantity=initial_quantity)
        if threshold is None:
            threshold = 0
        if threshold < 0:
            raise InvalidArgument("threshold cannot be negative", threshold=threshold)

        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFound.for_resource("Product", "id", product_id)
        if await self.store.load(product_id) is not None:
            raise AlreadyExists.for_resource("StockLedger", "product_id", product_id)

        created = await self.store.insert(
            StockLedger(product_id=product_id, quantity=initial_quantity, threshold=threshold)
        )
        logger.info(f"Stock ledger {created.id} created for product {product_id}")
        return created

    async def create_committed(self, product_id: int, initial_quantity: int,
                               threshold: Optional[int] = None) -> StockLedger:
        async with transaction(self.db):
            return await self.create(product_id, initial_quantity, threshold)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def set_stock(self, product_id: int, quantity: int,
                        expected_revision: Optional[int] = None) -> MutationResult:
        return await self._mutate(
            product_id, "set_stock",
            lambda ledger, rev: ledger.set_quantity(rev, quantity),
            expected_revision,
        )

    async def increase_stock(self, product_id: int, amount: int,
                             expected_revision: Optional[int] = None) -> MutationResult:
        return await self._mutate(
            product_id, "increase_stock",
            lambda ledger, rev: ledger.increment(rev, amount),
            expected_revision,
        )

    async def decrease_stock(self, product_id: int, amount: int,
                             expected_revision: Optional[int] = None) -> MutationResult:
        return await self._mutate(
            product_id, "decrease_stock",
            lambda ledger, rev: ledger.decrement(rev, amount),
            expected_revision,
        )

    async def set_threshold(self, product_id: int, threshold: int,
                            expected_revision: Optional[int] = None) -> MutationResult:
        return await self._mutate(
            product_id, "set_threshold",
            lambda ledger, rev: ledger.set_threshold(rev, threshold),
            expected_revision,
        )

    async def update(self, ledger_id: int, quantity: int, threshold: int,
                     expected_revision: Optional[int] = None) -> MutationResult:
        record = await self.store.load_record_by_id(ledger_id)
        if record is None:
            raise NotFound.for_resource("StockLedger", "id", ledger_id)
        return await self._mutate(
            record.product_id, "update",
            lambda ledger, rev: ledger.replace_levels(rev, quantity, threshold),
            expected_revision,
        )

    async def _mutate(self, product_id: int, operation: str,
                      apply: Callable[[StockLedger, int], StockLedger],
                      expected_revision: Optional[int]) -> MutationResult:
        # A caller-supplied revision is a snapshot the caller reasoned about:
        # a conflict goes straight back to them instead of being retried here.
        limit = 1 if expected_revision is not None else self.max_attempts
        attempts = 0

        while True:
            attempts += 1
            async with transaction(self.db):
                current = await self.store.load(product_id)
                if current is None:
                    raise NotFound.for_resource("StockLedger", "product_id", product_id)
                revision = current.revision if expected_revision is None else expected_revision
                previous_status = current.status

                try:
                    new_state = apply(current, revision)
                except InsufficientStock as e:
                    logger.info(f"{operation} refused for product {product_id}: {e.message}")
                    return MutationResult(MutationStatus.INSUFFICIENT_STOCK, current,
                                          previous_status, attempts, e)
                except ConcurrencyConflict as e:
                    conflict = e
                else:
                    if await self.store.compare_and_swap(revision, new_state):
                        result = MutationResult(MutationStatus.APPLIED, new_state, previous_status, attempts)
                        self._log_applied(operation, result)
                        return result
                    conflict = ConcurrencyConflict(product_id=product_id, expected_revision=revision)

            if attempts >= limit:
                logger.warning(
                    f"{operation} for product {product_id} gave up after {attempts} attempt(s): {conflict.message}"
                )
                return MutationResult(MutationStatus.CONFLICT, current, previous_status, attempts, conflict)
            logger.info(f"{operation} for product {product_id} lost revision race, retrying ({attempts}/{limit})")

    def _log_applied(self, operation: str, result: MutationResult) -> None:
        ledger = result.ledger
        logger.info(
            f"{operation} applied to product {ledger.product_id}: quantity={ledger.quantity} "
            f"threshold={ledger.threshold} revision={ledger.revision}"
        )
        if result.crossed_into_critical:
            logger.warning(
                f"ALERT: product {ledger.product_id} entered {ledger.status.value} "
                f"(quantity {ledger.quantity}, threshold {ledger.threshold})"
            )

    # =========================================================================
    # Deletion (permanent purge only)
    # =========================================================================

    async def delete_for_product(self, product_id: int) -> bool:
        deleted = await self.store.delete(product_id)
        if deleted:
            logger.info(f"Stock ledger for product {product_id} deleted")
        return bool(deleted)

    # =========================================================================
    # Queries
    # =========================================================================

    async def describe(self, ledger: StockLedger) -> LedgerOut:
        stmt = (
            select(Product)
            .where(Product.id == ledger.product_id)
            .options(selectinload(Product.category))
        )
        product = (await self.db.execute(stmt)).scalar_one_or_none()
        return ledger_out(ledger, product)

    async def list_all(self) -> List[LedgerOut]:
        return [record_out(r) for r in await self.store.list_records(include_inactive=True)]

    async def get_by_id(self, ledger_id: int) -> LedgerOut:
        record = await self.store.load_record_by_id(ledger_id)
        if record is None:
            raise NotFound.for_resource("StockLedger", "id", ledger_id)
        return record_out(record)

    async def get_by_product(self, product_id: int) -> LedgerOut:
        record = await self.store.load_record(product_id)
        if record is None:
            raise NotFound.for_resource("StockLedger", "product_id", product_id)
        return record_out(record)

    async def by_category(self, category_name: str) -> List[LedgerOut]:
        records = await self.store.list_records(
            Product.category.has(func.lower(Category.name) == (category_name or "").strip().lower())
        )
        return [record_out(r) for r in records]

    async def _by_status(self, statuses) -> List[LedgerOut]:
        records = await self.store.list_records(order_by=(StockLedgerRecord.quantity.asc(), StockLedgerRecord.id))
        return [record_out(r) for r in records if r.to_ledger().status in statuses]

    async def low_stock(self) -> List[LedgerOut]:
        """At or below threshold (BAJO, CRITICO and SIN_STOCK)."""
        return await self._by_status(LOW_STATUSES)

    async def critical_stock(self) -> List[LedgerOut]:
        """At or below half the threshold (CRITICO and SIN_STOCK)."""
        return await self._by_status(CRITICAL_STATUSES)

    async def out_of_stock(self) -> List[LedgerOut]:
        return await self._by_status({StockStatus.SIN_STOCK})

    async def replenishment(self) -> List[LedgerOut]:
        records = await self.store.list_records(order_by=(StockLedgerRecord.quantity.asc(), StockLedgerRecord.id))
        urgent = [r for r in records if r.to_ledger().needs_replenishment]
        urgent.sort(key=lambda r: (r.quantity, r.product.category.name.lower() if r.product.category else ""))
        return [record_out(r) for r in urgent]

    async def by_quantity_range(self, minimum: int, maximum: int) -> List[LedgerOut]:
        if minimum < 0 or maximum < 0:
            raise InvalidArgument("quantity bounds cannot be negative", minimum=minimum, maximum=maximum)
        if minimum > maximum:
            raise InvalidArgument("minimum cannot exceed maximum", minimum=minimum, maximum=maximum)
        records = await self.store.list_records(
            StockLedgerRecord.quantity.between(minimum, maximum),
            order_by=(StockLedgerRecord.quantity.desc(), StockLedgerRecord.id),
        )
        return [record_out(r) for r in records]

    async def updated_since(self, days: int) -> List[LedgerOut]:
        if days < 0:
            raise InvalidArgument("days cannot be negative", days=days)
        since = datetime.now(timezone.utc) - timedelta(days=days)
        records = await self.store.list_records(
            StockLedgerRecord.updated_at >= since,
            order_by=(StockLedgerRecord.updated_at.desc(), StockLedgerRecord.id),
        )
        return [record_out(r) for r in records]

    async def statistics(self) -> InventoryStats:
        ledgers = [r.to_ledger() for r in await self.store.list_records()]
        total = sum(l.quantity for l in ledgers)
        return InventoryStats(
            total_products=len(ledgers),
            total_quantity=total,
            average_quantity=(total / len(ledgers)) if ledgers else 0.0,
            below_threshold=sum(1 for l in ledgers if l.status in LOW_STATUSES),
        )

    async def total_value(self) -> Decimal:
        records = await self.store.list_records()
        return money(sum((r.product.price * r.quantity for r in records), Decimal("0")))

    async def low_stock_by_category(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for out in await self.low_stock():
            name = out.category_name or "N/A"
            counts[name] = counts.get(name, 0) + 1
        return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))

    async def has_sufficient_stock(self, product_id: int, requested: int) -> bool:
        if requested < 0:
            raise InvalidArgument("requested quantity cannot be negative", requested=requested)
        ledger = await self.store.load(product_id)
        if ledger is None:
            raise NotFound.for_resource("StockLedger", "product_id", product_id)
        return ledger.has_at_least(requested)
