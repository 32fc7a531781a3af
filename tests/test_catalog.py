"""Tests for the product and category catalog services."""

from __future__ import annotations

from decimal import Decimal

from db_support import DatabaseTestCase
from stock_hub.errors import AlreadyExists, InvalidArgument, NotFound, ResourceInUse
from stock_hub.models import CategoryIn, ProductIn
from stock_hub.services.catalog import CategoryService, ProductCatalogService
from stock_hub.services.stock_mutation import StockMutationService


class ProductCatalogTests(DatabaseTestCase):

    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.category_id = await self.make_category("Jardin")
        self.catalog = ProductCatalogService(self.db)

    async def test_create_with_initial_quantity_creates_ledger(self) -> None:
        product = await self.make_product("Pala", "12.50", self.category_id, quantity=6, threshold=4)

        self.assertEqual(product.stock, 6)
        self.assertEqual(product.threshold, 4)
        self.assertEqual(product.category_name, "Jardin")
        ledger = await StockMutationService(self.db).get_by_product(product.id)
        self.assertEqual(ledger.revision, 0)

    async def test_create_without_quantity_has_no_ledger(self) -> None:
        product = await self.make_product("Rastrillo", category_id=self.category_id)
        self.assertIsNone(product.stock)
        with self.assertRaises(NotFound):
            await StockMutationService(self.db).get_by_product(product.id)

    async def test_name_is_unique_ignoring_case(self) -> None:
        await self.make_product("Manguera", category_id=self.category_id)
        with self.assertRaises(AlreadyExists):
            await self.make_product("MANGUERA", category_id=self.category_id)

    async def test_unknown_category_is_not_found(self) -> None:
        with self.assertRaises(NotFound):
            await self.make_product("Tijera", category_id=999)

    async def test_failed_ledger_creation_rolls_back_product(self) -> None:
        with self.assertRaises(InvalidArgument):
            await self.make_product("Regadera", category_id=self.category_id, quantity=-1)

        self.assertEqual(await self.catalog.count_active(), 0)
        product = await self.make_product("Regadera", category_id=self.category_id, quantity=1)
        self.assertEqual(product.stock, 1)

    async def test_deactivate_and_reactivate(self) -> None:
        product = await self.make_product("Carretilla", category_id=self.category_id, quantity=2)

        await self.catalog.deactivate(product.id)
        self.assertEqual(await self.catalog.list_active(), [])
        self.assertFalse((await self.catalog.get(product.id)).is_active)
        # ledger survives the logical delete
        self.assertEqual((await StockMutationService(self.db).get_by_product(product.id)).quantity, 2)

        restored = await self.catalog.reactivate(product.id)
        self.assertTrue(restored.is_active)
        self.assertEqual(len(await self.catalog.list_active()), 1)

    async def test_update_keeps_product_inactive(self) -> None:
        product = await self.make_product("Martillo", "10.00", self.category_id, quantity=1)
        await self.catalog.deactivate(product.id)

        updated = await self.catalog.update(
            product.id, ProductIn(name="Martillo", price=Decimal("12.00"), category_id=self.category_id),
        )

        self.assertFalse(updated.is_active)
        self.assertEqual(updated.price, Decimal("12.00"))
        self.assertEqual(await self.catalog.list_active(), [])

    async def test_purge_removes_product_and_ledger(self) -> None:
        product = await self.make_product("Podadora", category_id=self.category_id, quantity=3)

        await self.catalog.purge(product.id)

        with self.assertRaises(NotFound):
            await self.catalog.get(product.id)
        with self.assertRaises(NotFound):
            await StockMutationService(self.db).get_by_product(product.id)

    async def test_update_checks_name_against_other_products(self) -> None:
        first = await self.make_product("Azada", category_id=self.category_id)
        await self.make_product("Pico", category_id=self.category_id)

        renamed = await self.catalog.update(
            first.id, ProductIn(name="Azadon", price=Decimal("9.99"), category_id=self.category_id),
        )
        self.assertEqual(renamed.name, "Azadon")
        self.assertEqual(renamed.price, Decimal("9.99"))
        with self.assertRaises(AlreadyExists):
            await self.catalog.update(
                first.id, ProductIn(name="pico", price=Decimal("9.99"), category_id=self.category_id),
            )

    async def test_search_and_price_range(self) -> None:
        await self.make_product("Tijera de podar", "15.00", self.category_id)
        await self.make_product("Guantes", "5.00", self.category_id)

        self.assertEqual([p.name for p in await self.catalog.search("TIJERA")], ["Tijera de podar"])
        in_range = await self.catalog.by_price_range(Decimal("1"), Decimal("10"))
        self.assertEqual([p.name for p in in_range], ["Guantes"])
        with self.assertRaises(InvalidArgument):
            await self.catalog.by_price_range(Decimal("10"), Decimal("1"))
        with self.assertRaises(InvalidArgument):
            await self.catalog.by_price_range(Decimal("-1"), Decimal("1"))

    async def test_stock_based_product_lists_and_values(self) -> None:
        await self.make_product("Lleno", "1.00", self.category_id, quantity=20, threshold=5)
        empty = await self.make_product("Agotado", "2.00", self.category_id, quantity=0, threshold=5)
        low = await self.make_product("Escaso", "3.00", self.category_id, quantity=4, threshold=5)

        self.assertEqual([p.id for p in await self.catalog.out_of_stock()], [empty.id])
        self.assertEqual([p.id for p in await self.catalog.low_stock()], [empty.id, low.id])
        values = {v.name: v.total_value for v in await self.catalog.inventory_value_per_product()}
        self.assertEqual(values, {"Lleno": Decimal("20.00"), "Agotado": Decimal("0.00"), "Escaso": Decimal("12.00")})


class CategoryServiceTests(DatabaseTestCase):

    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.categories = CategoryService(self.db)

    async def test_duplicate_name_ignoring_case(self) -> None:
        await self.categories.create(CategoryIn(name="Pintura"))
        with self.assertRaises(AlreadyExists):
            await self.categories.create(CategoryIn(name="pintura"))

    async def test_delete_refused_while_products_exist(self) -> None:
        category_id = await self.make_category("Electricidad")
        product = await self.make_product("Cable", category_id=category_id)

        with self.assertRaises(ResourceInUse):
            await self.categories.delete(category_id)

        await ProductCatalogService(self.db).purge(product.id)
        await self.categories.delete(category_id)
        with self.assertRaises(NotFound):
            await self.categories.get(category_id)

    async def test_lookup_by_name_and_update(self) -> None:
        category_id = await self.make_category("Fontaneria")
        found = await self.categories.get_by_name("FONTANERIA")
        self.assertEqual(found.id, category_id)

        updated = await self.categories.update(category_id, CategoryIn(name="Plomeria", description="Tubos"))
        self.assertEqual((updated.name, updated.description), ("Plomeria", "Tubos"))
        with self.assertRaises(NotFound):
            await self.categories.get_by_name("Fontaneria")

    async def test_statistics_count_active_products_and_value(self) -> None:
        tools = await self.make_category("Herramientas")
        paint = await self.make_category("Pintura")
        await self.make_product("Sierra", "10.00", tools, quantity=3)
        retired = await self.make_product("Lija", "1.00", tools, quantity=100)
        await self.make_product("Brocha", "4.00", paint, quantity=5)
        await ProductCatalogService(self.db).deactivate(retired.id)

        stats = {s.name: (s.product_count, s.total_value) for s in await self.categories.statistics()}
        self.assertEqual(stats["Herramientas"], (1, Decimal("30.00")))
        self.assertEqual(stats["Pintura"], (1, Decimal("20.00")))

        with_products = [c.name for c in await self.categories.with_products()]
        self.assertEqual(with_products, ["Herramientas", "Pintura"])
