# stock_hub/services/catalog.py
"""
Catalog services - products and categories.

Product names and category names are unique ignoring case. Products are
deactivated rather than deleted; ``purge`` is the explicit permanent path
and removes the product's stock ledger with it.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stock_hub.database import transaction
from stock_hub.db_models import Category, Product
from stock_hub.errors import AlreadyExists, InvalidArgument, NotFound, ResourceInUse
from stock_hub.models import CategoryIn, CategoryOut, CategoryStats, ProductIn, ProductOut, ProductValue
from stock_hub.services.ledger import CRITICAL_STATUSES, LOW_STATUSES, StockStatus
from stock_hub.services.stock_mutation import StockMutationService, money

logger = logging.getLogger(__name__)


def product_out(product: Product) -> ProductOut:
    ledger = product.ledger
    return ProductOut(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        category_id=product.category_id,
        category_name=product.category.name if product.category else None,
        is_active=product.is_active,
        stock=ledger.quantity if ledger else None,
        threshold=ledger.threshold if ledger else None,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _product_query():
    return (
        select(Product)
        .options(selectinload(Product.category), selectinload(Product.ledger))
        .execution_options(populate_existing=True)
    )


class CategoryService:
    """Category CRUD and statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFound.for_resource("Category", "id", category_id)
        return category

    async def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Category.id).where(func.lower(Category.name) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        return (await self.db.execute(stmt)).first() is not None

    async def list_all(self) -> List[CategoryOut]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return [CategoryOut.model_validate(c) for c in result.scalars().all()]

    async def get(self, category_id: int) -> CategoryOut:
        return CategoryOut.model_validate(await self._get(category_id))

    async def get_by_name(self, name: str) -> CategoryOut:
        stmt = select(Category).where(func.lower(Category.name) == (name or "").strip().lower())
        category = (await self.db.execute(stmt)).scalar_one_or_none()
        if category is None:
            raise NotFound.for_resource("Category", "name", name)
        return CategoryOut.model_validate(category)

    async def create(self, data: CategoryIn) -> CategoryOut:
        logger.info(f"Creating category: {data.name}")
        name = data.name.strip()
        if await self._name_taken(name):
            raise AlreadyExists.for_resource("Category", "name", name)
        category = Category(name=name, description=data.description)
        async with transaction(self.db):
            self.db.add(category)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise AlreadyExists.for_resource("Category", "name", name) from e
        await self.db.refresh(category)
        return CategoryOut.model_validate(category)

    async def update(self, category_id: int, data: CategoryIn) -> CategoryOut:
        logger.info(f"Updating category {category_id}")
        category = await self._get(category_id)
        name = data.name.strip()
        if name.lower() != category.name.lower() and await self._name_taken(name, exclude_id=category_id):
            raise AlreadyExists.for_resource("Category", "name", name)
        async with transaction(self.db):
            category.name = name
            category.description = data.description
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise AlreadyExists.for_resource("Category", "name", name) from e
        await self.db.refresh(category)
        return CategoryOut.model_validate(category)

    async def delete(self, category_id: int) -> None:
        category = await self._get(category_id)
        count = (await self.db.execute(
            select(func.count(Product.id)).where(Product.category_id == category_id)
        )).scalar_one()
        if count:
            raise ResourceInUse(
                f"Category '{category.name}' still has {count} product(s)",
                category_id=category_id, product_count=count,
            )
        async with transaction(self.db):
            await self.db.execute(delete(Category).where(Category.id == category_id))
        self.db.expunge(category)
        logger.info(f"Category {category_id} deleted")

    async def search(self, text: str) -> List[CategoryOut]:
        pattern = f"%{(text or '').strip().lower()}%"
        stmt = select(Category).where(func.lower(Category.name).like(pattern)).order_by(Category.name)
        return [CategoryOut.model_validate(c) for c in (await self.db.execute(stmt)).scalars().all()]

    async def with_products(self) -> List[CategoryOut]:
        stmt = (
            select(Category)
            .where(Category.products.any(Product.is_active.is_(True)))
            .order_by(Category.name)
        )
        return [CategoryOut.model_validate(c) for c in (await self.db.execute(stmt)).scalars().all()]

    async def statistics(self) -> List[CategoryStats]:
        """Active product count and inventory value per category."""
        stmt = (
            select(Category)
            .options(selectinload(Category.products).selectinload(Product.ledger))
            .order_by(Category.id)
            .execution_options(populate_existing=True)
        )
        stats = []
        for category in (await self.db.execute(stmt)).scalars().all():
            active = [p for p in category.products if p.is_active]
            value = sum(
                (p.price * p.ledger.quantity for p in active if p.ledger is not None),
                Decimal("0"),
            )
            stats.append(CategoryStats(
                id=category.id,
                name=category.name,
                product_count=len(active),
                total_value=money(value),
            ))
        return stats


class ProductCatalogService:
    """Product CRUD, the product-to-ledger coupling and catalog queries."""

    def __init__(self, db: AsyncSession, stock: Optional[StockMutationService] = None):
        self.db = db
        self.stock = stock or StockMutationService(db)

    async def _get(self, product_id: int) -> Product:
        stmt = _product_query().where(Product.id == product_id)
        product = (await self.db.execute(stmt)).scalar_one_or_none()
        if product is None:
            raise NotFound.for_resource("Product", "id", product_id)
        return product

    async def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Product.id).where(func.lower(Product.name) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return (await self.db.execute(stmt)).first() is not None

    async def _require_category(self, category_id: Optional[int]) -> Category:
        if not category_id:
            raise InvalidArgument("category is required", category_id=category_id)
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFound.for_resource("Category", "id", category_id)
        return category

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_active(self) -> List[ProductOut]:
        stmt = _product_query().where(Product.is_active.is_(True)).order_by(Product.id)
        return [product_out(p) for p in (await self.db.execute(stmt)).scalars().all()]

    async def get(self, product_id: int) -> ProductOut:
        return product_out(await self._get(product_id))

    async def by_category_name(self, name: str) -> List[ProductOut]:
        stmt = (
            _product_query()
            .join(Product.category)
            .where(func.lower(Category.name) == (name or "").strip().lower(), Product.is_active.is_(True))
            .order_by(Product.id)
        )
        return [product_out(p) for p in (await self.db.execute(stmt)).scalars().all()]

    async def search(self, text: str) -> List[ProductOut]:
        pattern = f"%{(text or '').strip().lower()}%"
        stmt = (
            _product_query()
            .where(
                Product.is_active.is_(True),
                func.lower(Product.name).like(pattern) | func.lower(func.coalesce(Product.description, "")).like(pattern),
            )
            .order_by(Product.name)
        )
        return [product_out(p) for p in (await self.db.execute(stmt)).scalars().all()]

    async def by_price_range(self, minimum: Decimal, maximum: Decimal) -> List[ProductOut]:
        if minimum < 0 or maximum < 0:
            raise InvalidArgument("prices cannot be negative", minimum=str(minimum), maximum=str(maximum))
        if minimum > maximum:
            raise InvalidArgument("minimum price cannot exceed maximum price",
                                  minimum=str(minimum), maximum=str(maximum))
        stmt = (
            _product_query()
            .where(Product.is_active.is_(True), Product.price.between(minimum, maximum))
            .order_by(Product.price)
        )
        return [product_out(p) for p in (await self.db.execute(stmt)).scalars().all()]

    async def _by_stock_status(self, statuses) -> List[ProductOut]:
        stmt = _product_query().where(Product.is_active.is_(True), Product.ledger.has()).order_by(Product.id)
        products = (await self.db.execute(stmt)).scalars().all()
        matching = [p for p in products if p.ledger.to_ledger().status in statuses]
        matching.sort(key=lambda p: p.ledger.quantity)
        return [product_out(p) for p in matching]

    async def low_stock(self) -> List[ProductOut]:
        return await self._by_stock_status(LOW_STATUSES)

    async def critical_stock(self) -> List[ProductOut]:
        return await self._by_stock_status(CRITICAL_STATUSES)

    async def out_of_stock(self) -> List[ProductOut]:
        return await self._by_stock_status({StockStatus.SIN_STOCK})

    async def inventory_value_per_product(self) -> List[ProductValue]:
        stmt = _product_query().where(Product.is_active.is_(True), Product.ledger.has()).order_by(Product.id)
        values = []
        for p in (await self.db.execute(stmt)).scalars().all():
            values.append(ProductValue(
                product_id=p.id,
                name=p.name,
                category_name=p.category.name if p.category else None,
                price=p.price,
                quantity=p.ledger.quantity,
                total_value=money(p.price * p.ledger.quantity),
            ))
        return values

    async def recent(self, days: int) -> List[ProductOut]:
        if days < 0:
            raise InvalidArgument("days cannot be negative", days=days)
        since = datetime.now(timezone.utc) - timedelta(days=days)
        stmt = (
            _product_query()
            .where(Product.is_active.is_(True), Product.created_at >= since)
            .order_by(Product.created_at.desc())
        )
        return [product_out(p) for p in (await self.db.execute(stmt)).scalars().all()]

    async def count_active(self) -> int:
        stmt = select(func.count(Product.id)).where(Product.is_active.is_(True))
        return (await self.db.execute(stmt)).scalar_one()

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, data: ProductIn, initial_quantity: Optional[int] = None,
                     threshold: Optional[int] = None) -> ProductOut:
        """
        Create a product and, when ``initial_quantity`` is given, its stock ledger.

        Both rows are written in one transaction: a ledger failure leaves no
        product behind.
        """
        logger.info(f"Creating product: {data.name}")
        name = data.name.strip()
        if await self._name_taken(name):
            raise AlreadyExists.for_resource("Product", "name", name)
        await self._require_category(data.category_id)

        product = Product(
            name=name,
            description=data.description,
            price=data.price,
            category_id=data.category_id,
            is_active=data.is_active,
        )
        async with transaction(self.db):
            self.db.add(product)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise AlreadyExists.for_resource("Product", "name", name) from e
            if initial_quantity is not None:
                await self.stock.create(product.id, initial_quantity, threshold)

        logger.info(f"Product {product.id} created: {name}")
        return product_out(await self._get(product.id))

    async def update(self, product_id: int, data: ProductIn) -> ProductOut:
        logger.info(f"Updating product {product_id}")
        product = await self._get(product_id)
        name = data.name.strip()
        if name.lower() != product.name.lower() and await self._name_taken(name, exclude_id=product_id):
            raise AlreadyExists.for_resource("Product", "name", name)
        if data.category_id != product.category_id:
            await self._require_category(data.category_id)

        async with transaction(self.db):
            product.name = name
            product.description = data.description
            product.price = data.price
            product.category_id = data.category_id
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise AlreadyExists.for_resource("Product", "name", name) from e
        return product_out(await self._get(product_id))

    async def deactivate(self, product_id: int) -> None:
        """Logical delete. The stock ledger is left untouched."""
        product = await self._get(product_id)
        async with transaction(self.db):
            product.is_active = False
        logger.info(f"Product {product_id} deactivated")

    async def reactivate(self, product_id: int) -> ProductOut:
        product = await self._get(product_id)
        async with transaction(self.db):
            product.is_active = True
        logger.info(f"Product {product_id} reactivated")
        return product_out(await self._get(product_id))

    async def purge(self, product_id: int) -> None:
        """Permanent delete of the product and its stock ledger."""
        product = await self._get(product_id)
        async with transaction(self.db):
            await self.stock.delete_for_product(product_id)
            await self.db.execute(delete(Product).where(Product.id == product_id))
        if product.ledger is not None:
            self.db.expunge(product.ledger)
        self.db.expunge(product)
        logger.info(f"Product {product_id} permanently deleted")
