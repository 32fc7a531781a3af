# stock_hub/routers/inventory.py
"""
Inventory Router - stock ledger endpoints of the data tier.

Mutations accept an optional ``revision``: when given, the write only lands
if the stored revision still matches (409 concurrency_conflict otherwise).
Without it the service retries lost races a bounded number of times.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stock_hub.database import get_session
from stock_hub.models import (
    InventoryStats, LedgerIn, LedgerOut, LedgerUpdate, StockCheck, StockMutationOut,
)
from stock_hub.services.stock_mutation import MutationResult, StockMutationService

router = APIRouter(prefix="/data/inventario", tags=["Inventory"])


def get_stock(db: AsyncSession = Depends(get_session)) -> StockMutationService:
    return StockMutationService(db)


async def _mutation_out(stock: StockMutationService, result: MutationResult) -> StockMutationOut:
    ledger = result.unwrap()
    return StockMutationOut(
        ledger=await stock.describe(ledger),
        previous_status=result.previous_status,
        status=result.stock_status,
        crossed_into_critical=result.crossed_into_critical,
        attempts=result.attempts,
    )


# ============================================================================
# Queries
# ============================================================================

@router.get("", response_model=List[LedgerOut])
async def list_ledgers(stock: StockMutationService = Depends(get_stock)):
    return await stock.list_all()


@router.get("/stock-bajo", response_model=List[LedgerOut])
async def low_stock(stock: StockMutationService = Depends(get_stock)):
    return await stock.low_stock()


@router.get("/stock-critico", response_model=List[LedgerOut])
async def critical_stock(stock: StockMutationService = Depends(get_stock)):
    return await stock.critical_stock()


@router.get("/sin-stock", response_model=List[LedgerOut])
async def out_of_stock(stock: StockMutationService = Depends(get_stock)):
    return await stock.out_of_stock()


@router.get("/reabastecimiento", response_model=List[LedgerOut])
async def replenishment(stock: StockMutationService = Depends(get_stock)):
    return await stock.replenishment()


@router.get("/estadisticas", response_model=InventoryStats)
async def statistics(stock: StockMutationService = Depends(get_stock)):
    return await stock.statistics()


@router.get("/valor-total")
async def total_value(stock: StockMutationService = Depends(get_stock)) -> Dict[str, Decimal]:
    return {"total_value": await stock.total_value()}


@router.get("/categoria/{nombre:path}", response_model=List[LedgerOut])
async def by_category(nombre: str, stock: StockMutationService = Depends(get_stock)):
    return await stock.by_category(nombre)


@router.get("/actualizados", response_model=List[LedgerOut])
async def updated_since(dias: int = Query(7), stock: StockMutationService = Depends(get_stock)):
    return await stock.updated_since(dias)


@router.get("/rango", response_model=List[LedgerOut])
async def by_quantity_range(
    minimum: int = Query(..., alias="min"),
    maximum: int = Query(..., alias="max"),
    stock: StockMutationService = Depends(get_stock),
):
    return await stock.by_quantity_range(minimum, maximum)


@router.get("/stock-bajo-por-categoria")
async def low_stock_by_category(stock: StockMutationService = Depends(get_stock)) -> Dict[str, int]:
    return await stock.low_stock_by_category()


@router.get("/producto/{product_id}", response_model=LedgerOut)
async def get_by_product(product_id: int, stock: StockMutationService = Depends(get_stock)):
    return await stock.get_by_product(product_id)


@router.get("/producto/{product_id}/suficiente", response_model=StockCheck)
async def sufficient_stock(product_id: int, cantidad: int = Query(...),
                           stock: StockMutationService = Depends(get_stock)):
    sufficient = await stock.has_sufficient_stock(product_id, cantidad)
    return StockCheck(product_id=product_id, requested=cantidad, sufficient=sufficient)


@router.get("/{ledger_id}", response_model=LedgerOut)
async def get_ledger(ledger_id: int, stock: StockMutationService = Depends(get_stock)):
    return await stock.get_by_id(ledger_id)


# ============================================================================
# Writes
# ============================================================================

@router.post("", response_model=LedgerOut, status_code=201)
async def create_ledger(data: LedgerIn, stock: StockMutationService = Depends(get_stock)):
    ledger = await stock.create_committed(data.product_id, data.quantity, data.threshold)
    return await stock.describe(ledger)


@router.put("/{ledger_id}", response_model=StockMutationOut)
async def update_ledger(ledger_id: int, data: LedgerUpdate, stock: StockMutationService = Depends(get_stock)):
    result = await stock.update(ledger_id, data.quantity, data.threshold, data.revision)
    return await _mutation_out(stock, result)


@router.put("/producto/{product_id}/stock", response_model=StockMutationOut)
async def set_stock(product_id: int, cantidad: int = Query(...), revision: Optional[int] = Query(None),
                    stock: StockMutationService = Depends(get_stock)):
    return await _mutation_out(stock, await stock.set_stock(product_id, cantidad, revision))


@router.patch("/producto/{product_id}/incrementar", response_model=StockMutationOut)
async def increase_stock(product_id: int, cantidad: int = Query(...), revision: Optional[int] = Query(None),
                         stock: StockMutationService = Depends(get_stock)):
    return await _mutation_out(stock, await stock.increase_stock(product_id, cantidad, revision))


@router.patch("/producto/{product_id}/decrementar", response_model=StockMutationOut)
async def decrease_stock(product_id: int, cantidad: int = Query(...), revision: Optional[int] = Query(None),
                         stock: StockMutationService = Depends(get_stock)):
    return await _mutation_out(stock, await stock.decrease_stock(product_id, cantidad, revision))


@router.put("/producto/{product_id}/stock-minimo", response_model=StockMutationOut)
async def set_threshold(product_id: int, stock_minimo: int = Query(..., alias="stockMinimo"),
                        revision: Optional[int] = Query(None),
                        stock: StockMutationService = Depends(get_stock)):
    return await _mutation_out(stock, await stock.set_threshold(product_id, stock_minimo, revision))
