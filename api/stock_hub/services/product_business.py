# stock_hub/services/product_business.py
"""
Product Business Service - business tier product operations.

Validates input before it crosses the wire, calls the data tier through
the resilient facade and enriches products with stock status and inventory
value. Status comes from ``classify``; no threshold arithmetic lives here.
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import List, Optional

from stock_hub.clients.resilient import Degradable, ResilientCatalogFacade
from stock_hub.context import CallContext
from stock_hub.errors import InvalidArgument
from stock_hub.models import ProductIn, ProductOut, StockMutationOut
from stock_hub.services.ledger import classify
from stock_hub.services.stock_mutation import money

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_SEARCH_LENGTH = 2


def enrich(product: ProductOut) -> ProductOut:
    """Fill stock_status and inventory_value when the product has a ledger."""
    if product.stock is None:
        return product
    return product.model_copy(update={
        "stock_status": classify(product.stock, product.threshold or 0),
        "inventory_value": money(product.price * product.stock),
    })


def validate_product(product: ProductIn, initial_quantity: Optional[int] = None,
                     threshold: Optional[int] = None) -> None:
    if not product.name or len(product.name.strip()) < MIN_NAME_LENGTH:
        raise InvalidArgument(f"product name must have at least {MIN_NAME_LENGTH} characters", name=product.name)
    if product.price is None or product.price <= 0:
        raise InvalidArgument("price must be greater than zero", price=str(product.price))
    if product.category_id is None or product.category_id <= 0:
        raise InvalidArgument("a valid category is required", category_id=product.category_id)
    if initial_quantity is not None and initial_quantity < 0:
        raise InvalidArgument("initial stock cannot be negative", quantity=initial_quantity)
    if threshold is not None and threshold < 0:
        raise InvalidArgument("minimum stock cannot be negative", threshold=threshold)


def _enriched(result: Degradable) -> Degradable:
    value = result.value
    if isinstance(value, list):
        value = [enrich(p) for p in value]
    elif isinstance(value, ProductOut):
        value = enrich(value)
    return Degradable(value, result.degraded)


class ProductBusinessService:
    def __init__(self, facade: ResilientCatalogFacade):
        self.facade = facade

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_products(self, ctx: CallContext) -> Degradable[List[ProductOut]]:
        return _enriched(await self.facade.list_products(ctx))

    async def get_product(self, ctx: CallContext, product_id: int) -> Degradable[Optional[ProductOut]]:
        if product_id <= 0:
            raise InvalidArgument("product id must be positive", product_id=product_id)
        return _enriched(await self.facade.get_product(ctx, product_id))

    async def search(self, ctx: CallContext, text: str) -> Degradable[List[ProductOut]]:
        if not text or len(text.strip()) < MIN_SEARCH_LENGTH:
            raise InvalidArgument(f"search text must have at least {MIN_SEARCH_LENGTH} characters", text=text)
        return _enriched(await self.facade.search_products(ctx, text.strip()))

    async def by_category(self, ctx: CallContext, category_name: str) -> Degradable[List[ProductOut]]:
        if not category_name or not category_name.strip():
            raise InvalidArgument("category name is required")
        return _enriched(await self.facade.products_by_category(ctx, category_name.strip()))

    async def by_price_range(self, ctx: CallContext, minimum: Decimal,
                             maximum: Decimal) -> Degradable[List[ProductOut]]:
        if minimum is None or maximum is None or minimum < 0 or maximum < 0:
            raise InvalidArgument("prices cannot be negative", minimum=str(minimum), maximum=str(maximum))
        if minimum > maximum:
            raise InvalidArgument("minimum price cannot exceed maximum price",
                                  minimum=str(minimum), maximum=str(maximum))
        return _enriched(await self.facade.products_by_price_range(ctx, minimum, maximum))

    async def low_stock(self, ctx: CallContext) -> Degradable[List[ProductOut]]:
        return _enriched(await self.facade.low_stock_products(ctx))

    async def has_sufficient_stock(self, ctx: CallContext, product_id: int, quantity: int) -> Degradable[bool]:
        """Answers False when degraded."""
        if quantity <= 0:
            raise InvalidArgument("quantity must be greater than zero", quantity=quantity)
        return await self.facade.has_sufficient_stock(ctx, product_id, quantity)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_product(self, ctx: CallContext, product: ProductIn, initial_quantity: Optional[int] = None,
                             threshold: Optional[int] = None) -> Degradable[Optional[ProductOut]]:
        validate_product(product, initial_quantity, threshold)
        logger.info(f"[{ctx.request_id}] Creating product {product.name}")
        return _enriched(await self.facade.create_product(ctx, product, initial_quantity, threshold))

    async def update_product(self, ctx: CallContext, product_id: int,
                             product: ProductIn) -> Degradable[Optional[ProductOut]]:
        validate_product(product)
        return _enriched(await self.facade.update_product(ctx, product_id, product))

    async def delete_product(self, ctx: CallContext, product_id: int) -> Degradable[Optional[bool]]:
        return await self.facade.delete_product(ctx, product_id)

    async def increase_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        if amount <= 0:
            raise InvalidArgument("amount must be greater than zero", amount=amount)
        return await self.facade.increase_stock(ctx, product_id, amount, revision)

    async def decrease_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        if amount <= 0:
            raise InvalidArgument("amount must be greater than zero", amount=amount)
        result = await self.facade.decrease_stock(ctx, product_id, amount, revision)
        if result.value is not None and result.value.crossed_into_critical:
            logger.warning(
                f"[{ctx.request_id}] Product {product_id} is now {result.value.status.value} "
                f"(quantity {result.value.ledger.quantity})"
            )
        return result

    async def set_stock(self, ctx: CallContext, product_id: int, quantity: int,
                        revision: Optional[int] = None) -> Degradable[Optional[StockMutationOut]]:
        if quantity < 0:
            raise InvalidArgument("quantity cannot be negative", quantity=quantity)
        return await self.facade.set_stock(ctx, product_id, quantity, revision)
