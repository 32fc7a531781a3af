# stock_hub/clients/resilient.py
"""
Resilient Catalog Facade - the business tier's only path to the data tier.

Each call independently tries the remote dependency. When that single call
fails with DependencyUnavailable it answers with a fallback and marks the
result degraded:

- list reads  -> empty list
- aggregates  -> zero (total value) or zeroed statistics
- single gets and every write -> None ("not applied")

Every other error (not found, invalid argument, insufficient stock,
conflict, remote 500) passes through unchanged. No state is kept between
calls.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from stock_hub.clients.catalog_client import SERVICE_NAME, RemoteCatalogClient
from stock_hub.context import CallContext
from stock_hub.errors import DependencyUnavailable
from stock_hub.models import (
    CategoryOut, CategoryStats, InventoryStats, LedgerOut, ProductIn, ProductOut,
    ProductValue, StockMutationOut,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Degradable(Generic[T]):
    value: T
    degraded: bool = False


def _empty() -> list:
    return []


def _none() -> None:
    return None


class ResilientCatalogFacade:
    def __init__(self, client: RemoteCatalogClient):
        self.client = client

    async def _call(self, ctx: CallContext, operation: str, fallback: Callable[[], T],
                    call: Callable[..., Awaitable[T]], *args: Any) -> Degradable[T]:
        try:
            return Degradable(await call(ctx, *args))
        except DependencyUnavailable as e:
            logger.warning(f"[{ctx.request_id}] {operation} degraded: {e.message}")
            return Degradable(fallback(), degraded=True)

    # =========================================================================
    # Products
    # =========================================================================

    async def list_products(self, ctx: CallContext) -> Degradable[List[ProductOut]]:
        return await self._call(ctx, "list_products", _empty, self.client.list_products)

    async def get_product(self, ctx: CallContext, product_id: int) -> Degradable[Optional[ProductOut]]:
        return await self._call(ctx, "get_product", _none, self.client.get_product, product_id)

    async def create_product(self, ctx: CallContext, product: ProductIn, initial_quantity: Optional[int] = None,
                             threshold: Optional[int] = None) -> Degradable[Optional[ProductOut]]:
        return await self._call(ctx, "create_product", _none, self.client.create_product,
                                product, initial_quantity, threshold)

    async def update_product(self, ctx: CallContext, product_id: int,
                             product: ProductIn) -> Degradable[Optional[ProductOut]]:
        return await self._call(ctx, "update_product", _none, self.client.update_product, product_id, product)

    async def delete_product(self, ctx: CallContext, product_id: int) -> Degradable[Optional[bool]]:
        return await self._call(ctx, "delete_product", _none, self.client.delete_product, product_id)

    async def search_products(self, ctx: CallContext, text: str) -> Degradable[List[ProductOut]]:
        return await self._call(ctx, "search_products", _empty, self.client.search_products, text)

    async def products_by_category(self, ctx: CallContext, category_name: str) -> Degradable[List[ProductOut]]:
        return await self._call(ctx, "products_by_category", _empty, self.client.products_by_category,
                                category_name)

    async def products_by_price_range(self, ctx: CallContext, minimum: Decimal,
                                      maximum: Decimal) -> Degradable[List[ProductOut]]:
        return await self._call(ctx, "products_by_price_range", _empty, self.client.products_by_price_range,
                                minimum, maximum)

    async def low_stock_products(self, ctx: CallContext) -> Degradable[List[ProductOut]]:
        return await self._call(ctx, "low_stock_products", _empty, self.client.low_stock_products)

    async def inventory_value_per_product(self, ctx: CallContext) -> Degradable[List[ProductValue]]:
        return await self._call(ctx, "inventory_value_per_product", _empty,
                                self.client.inventory_value_per_product)

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self, ctx: CallContext) -> Degradable[List[CategoryOut]]:
        return await self._call(ctx, "list_categories", _empty, self.client.list_categories)

    async def category_statistics(self, ctx: CallContext) -> Degradable[List[CategoryStats]]:
        return await self._call(ctx, "category_statistics", _empty, self.client.category_statistics)

    # =========================================================================
    # Inventory
    # =========================================================================

    async def list_ledgers(self, ctx: CallContext) -> Degradable[List[LedgerOut]]:
        return await self._call(ctx, "list_ledgers", _empty, self.client.list_ledgers)

    async def low_stock(self, ctx: CallContext) -> Degradable[List[LedgerOut]]:
        return await self._call(ctx, "low_stock", _empty, self.client.low_stock)

    async def critical_stock(self, ctx: CallContext) -> Degradable[List[LedgerOut]]:
        return await self._call(ctx, "critical_stock", _empty, self.client.critical_stock)

    async def out_of_stock(self, ctx: CallContext) -> Degradable[List[LedgerOut]]:
        return await self._call(ctx, "out_of_stock", _empty, self.client.out_of_stock)

    async def replenishment(self, ctx: CallContext) -> Degradable[List[LedgerOut]]:
        return await self._call(ctx, "replenishment", _empty, self.client.replenishment)

    async def inventory_statistics(self, ctx: CallContext) -> Degradable[InventoryStats]:
        return await self._call(ctx, "inventory_statistics", lambda: InventoryStats(service_available=False),
                                self.client.inventory_statistics)

    async def total_value(self, ctx: CallContext) -> Degradable[Decimal]:
        return await self._call(ctx, "total_value", lambda: Decimal("0"), self.client.total_value)

    async def set_stock(self, ctx: CallContext, product_id: int, quantity: int,
                        revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        return await self._call(ctx, "set_stock", _none, self.client.set_stock, product_id, quantity, revision)

    async def increase_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        return await self._call(ctx, "increase_stock", _none, self.client.increase_stock,
                                product_id, amount, revision)

    async def decrease_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        return await self._call(ctx, "decrease_stock", _none, self.client.decrease_stock,
                                product_id, amount, revision)

    async def has_sufficient_stock(self, ctx: CallContext, product_id: int,
                                   quantity: int) -> Degradable[bool]:
        return await self._call(ctx, "has_sufficient_stock", lambda: False, self.client.has_sufficient_stock,
                                product_id, quantity)

    # =========================================================================
    # Health
    # =========================================================================

    async def health(self, ctx: CallContext) -> Degradable[Dict[str, Any]]:
        return await self._call(
            ctx, "health",
            lambda: {"status": "DOWN", "service": SERVICE_NAME, "message": "data service unreachable"},
            self.client.health,
        )
