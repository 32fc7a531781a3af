# stock_hub/services/stock_store.py
"""
Ledger persistence.

``LedgerStore`` is what StockMutationService needs from storage: load a
snapshot, insert a new ledger, and a compare-and-swap write that only lands
when the stored revision still matches the caller's snapshot.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stock_hub.db_models import Product, StockLedgerRecord
from stock_hub.errors import AlreadyExists
from stock_hub.services.ledger import StockLedger


class LedgerStore(Protocol):
    async def load(self, product_id: int) -> Optional[StockLedger]:
        ...

    async def insert(self, ledger: StockLedger) -> StockLedger:
        ...

    async def compare_and_swap(self, expected_revision: int, new_state: StockLedger) -> bool:
        ...


class SqlLedgerStore:
    """LedgerStore over the stock_ledgers table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def load(self, product_id: int) -> Optional[StockLedger]:
        # populate_existing: a retry must see the row as committed now,
        # not the copy cached in the identity map
        stmt = (
            select(StockLedgerRecord)
            .where(StockLedgerRecord.product_id == product_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        record = result.scalar_one_or_none()
        return record.to_ledger() if record else None

    async def load_record(self, product_id: int) -> Optional[StockLedgerRecord]:
        stmt = (
            select(StockLedgerRecord)
            .where(StockLedgerRecord.product_id == product_id)
            .options(selectinload(StockLedgerRecord.product).selectinload(Product.category))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def load_record_by_id(self, ledger_id: int) -> Optional[StockLedgerRecord]:
        stmt = (
            select(StockLedgerRecord)
            .where(StockLedgerRecord.id == ledger_id)
            .options(selectinload(StockLedgerRecord.product).selectinload(Product.category))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, ledger: StockLedger) -> StockLedger:
        now = datetime.now(timezone.utc)
        record = StockLedgerRecord(
            product_id=ledger.product_id,
            quantity=ledger.quantity,
            threshold=ledger.threshold,
            revision=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # unique(product_id) lost a race against another creator
            raise AlreadyExists.for_resource("StockLedger", "product_id", ledger.product_id) from e
        return record.to_ledger()

    async def compare_and_swap(self, expected_revision: int, new_state: StockLedger) -> bool:
        stmt = (
            update(StockLedgerRecord)
            .where(
                StockLedgerRecord.product_id == new_state.product_id,
                StockLedgerRecord.revision == expected_revision,
            )
            .values(
                quantity=new_state.quantity,
                threshold=new_state.threshold,
                revision=expected_revision + 1,
                updated_at=new_state.updated_at or datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def delete(self, product_id: int) -> int:
        stmt = delete(StockLedgerRecord).where(StockLedgerRecord.product_id == product_id)
        result = await self.db.execute(stmt)
        return result.rowcount

    # =========================================================================
    # Queries (active products only)
    # =========================================================================

    async def list_records(self, *conditions, include_inactive: bool = False,
                           order_by: Sequence = ()) -> List[StockLedgerRecord]:
        stmt = (
            select(StockLedgerRecord)
            .join(StockLedgerRecord.product)
            .options(selectinload(StockLedgerRecord.product).selectinload(Product.category))
        )
        if not include_inactive:
            stmt = stmt.where(Product.is_active.is_(True))
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = stmt.order_by(*order_by) if order_by else stmt.order_by(StockLedgerRecord.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
