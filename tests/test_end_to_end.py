"""End-to-end: business client -> data tier app in-process (httpx.ASGITransport, SQLite file)."""

from __future__ import annotations

import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx

from stock_hub import business_main, database, main
from stock_hub.clients.catalog_client import RemoteCatalogClient
from stock_hub.clients.resilient import ResilientCatalogFacade
from stock_hub.context import CallContext
from stock_hub.errors import ConcurrencyConflict, InsufficientStock, NotFound
from stock_hub.models import ProductIn
from stock_hub.services.ledger import StockStatus
from stock_hub.services.product_business import ProductBusinessService
from stock_hub.services.report_business import ReportBusinessService

DATA_URL = "http://data-service"


class DataTierEndToEndTests(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        await database.init_db(f"sqlite+aiosqlite:///{Path(self._temp_dir.name) / 'e2e.db'}")
        await database.create_tables()

        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=main.app), base_url=DATA_URL)
        self.client = RemoteCatalogClient(DATA_URL, http=self.http)
        self.facade = ResilientCatalogFacade(self.client)
        self.ctx = CallContext(request_id="e2e")

        self.category_id = await self._create_category("Herramientas")

    async def asyncTearDown(self) -> None:
        await self.client.aclose()
        await database.close_db()
        self._temp_dir.cleanup()

    async def _create_category(self, name: str) -> int:
        response = await self.http.post("/data/categorias", json={"name": name})
        self.assertEqual(response.status_code, 201)
        return response.json()["id"]

    async def _create_product(self, name: str = "Taladro", quantity: int = 10, threshold: int = 5,
                              category_id: Optional[int] = None):
        product = ProductIn(name=name, price=Decimal("20.00"), category_id=category_id or self.category_id)
        result = await self.facade.create_product(self.ctx, product, quantity, threshold)
        self.assertFalse(result.degraded)
        return result.value

    async def test_stock_walkthrough_across_tiers(self) -> None:
        product = await self._create_product()
        self.assertEqual(product.stock, 10)

        first = await self.facade.decrease_stock(self.ctx, product.id, 7)
        self.assertEqual((first.value.ledger.quantity, first.value.status), (3, StockStatus.BAJO))

        second = await self.facade.decrease_stock(self.ctx, product.id, 2)
        self.assertEqual(second.value.status, StockStatus.CRITICO)
        self.assertTrue(second.value.crossed_into_critical)

        with self.assertRaises(InsufficientStock) as caught:
            await self.facade.decrease_stock(self.ctx, product.id, 2)
        self.assertEqual((caught.exception.available, caught.exception.requested), (1, 2))

        response = await self.http.get(f"/data/inventario/producto/{product.id}")
        ledger = response.json()
        self.assertEqual((ledger["quantity"], ledger["revision"]), (1, 2))

    async def test_stale_revision_surfaces_as_conflict(self) -> None:
        product = await self._create_product()
        await self.facade.increase_stock(self.ctx, product.id, 1)

        with self.assertRaises(ConcurrencyConflict) as caught:
            await self.facade.decrease_stock(self.ctx, product.id, 1, revision=0)
        self.assertEqual(caught.exception.actual_revision, 1)

    async def test_unknown_product_is_not_found_through_facade(self) -> None:
        with self.assertRaises(NotFound):
            await self.facade.get_product(self.ctx, 999)

    async def test_duplicate_name_and_category_in_use(self) -> None:
        await self._create_product("Sierra")
        response = await self.http.post(
            "/data/productos", json={"name": "SIERRA", "price": "5.00", "category_id": self.category_id},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "already_exists")

        response = await self.http.delete(f"/data/categorias/{self.category_id}")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "resource_in_use")

    async def test_reports_over_live_data(self) -> None:
        await self._create_product("Lleno", quantity=50, threshold=5)
        await self._create_product("Vacio", quantity=0, threshold=5)

        reports = ReportBusinessService(self.facade)
        state = await reports.stock_state(self.ctx)
        alerts = await reports.alerts(self.ctx)
        financial = await reports.financial(self.ctx)

        self.assertFalse(state.degraded)
        self.assertEqual((state.normal, state.out_of_stock), (1, 1))
        self.assertEqual(state.total_value, Decimal("1000.00"))
        self.assertIn("urgente", alerts.recommendations)
        self.assertEqual(financial.total_value, Decimal("1000.00"))
        self.assertEqual(financial.top_products[0].name, "Lleno")

    async def test_health_is_up(self) -> None:
        result = await self.facade.health(self.ctx)
        self.assertFalse(result.degraded)
        self.assertEqual(result.value["status"], "UP")

    async def test_category_names_with_reserved_url_characters(self) -> None:
        await self._create_product("Camisa", category_id=await self._create_category("Ropa"))
        await self._create_product("Gorro", category_id=await self._create_category("Ropa?Kids"))
        await self._create_product("Parlante", quantity=3, category_id=await self._create_category("Audio/Video"))

        for category, expected in (("Ropa", ["Camisa"]), ("Ropa?Kids", ["Gorro"]), ("Audio/Video", ["Parlante"])):
            with self.subTest(category=category):
                result = await self.facade.products_by_category(self.ctx, category)
                self.assertFalse(result.degraded)
                self.assertEqual([p.name for p in result.value], expected)

        response = await self.http.get(f"/data/inventario/categoria/{quote('Audio/Video', safe='')}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([l["quantity"] for l in response.json()], [3])

    async def test_update_does_not_reactivate_deleted_product(self) -> None:
        product = await self._create_product("Martillo")
        await self.facade.delete_product(self.ctx, product.id)

        changed = ProductIn(name="Martillo", price=Decimal("12.00"), category_id=self.category_id)
        result = await self.facade.update_product(self.ctx, product.id, changed)

        self.assertFalse(result.value.is_active)
        self.assertEqual((await self.facade.list_products(self.ctx)).value, [])

    async def test_sufficiency_and_summary_over_live_data(self) -> None:
        product = await self._create_product(quantity=10)
        products = ProductBusinessService(self.facade)

        self.assertTrue((await products.has_sufficient_stock(self.ctx, product.id, 10)).value)
        self.assertFalse((await products.has_sufficient_stock(self.ctx, product.id, 11)).value)

        summary = await ReportBusinessService(self.facade).summary(self.ctx)
        self.assertFalse(summary.degraded)
        self.assertEqual((summary.value.total_products, summary.value.total_quantity), (1, 10))
        self.assertTrue(summary.value.service_available)


class BusinessTierHttpTests(unittest.IsolatedAsyncioTestCase):
    """Business app routes with a data tier that cannot be reached."""

    async def asyncSetUp(self) -> None:
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        data_http = httpx.AsyncClient(base_url=DATA_URL, transport=httpx.MockTransport(unreachable))
        self.client = RemoteCatalogClient(DATA_URL, http=data_http)
        business_main.app.state.facade = ResilientCatalogFacade(self.client)
        self.http = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=business_main.app), base_url="http://business-service",
        )

    async def asyncTearDown(self) -> None:
        await self.http.aclose()
        await self.client.aclose()

    async def test_reads_answer_degraded(self) -> None:
        response = await self.http.get("/business/productos", headers={"X-Request-ID": "r-1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"data": [], "degraded": True, "request_id": "r-1"})

    async def test_writes_answer_not_applied(self) -> None:
        response = await self.http.patch("/business/productos/1/stock/decrementar", params={"cantidad": 2})
        self.assertEqual(response.status_code, 503)
        body = response.json()
        self.assertIsNone(body["data"])
        self.assertTrue(body["degraded"])

    async def test_reports_answer_degraded(self) -> None:
        response = await self.http.get("/business/reportes/inventario")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["degraded"])

    async def test_category_route_accepts_encoded_slash(self) -> None:
        response = await self.http.get("/business/productos/categoria/Audio%2FVideo")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], [])
        self.assertTrue(response.json()["degraded"])

    async def test_summary_and_sufficiency_answer_degraded(self) -> None:
        summary = await self.http.get("/business/reportes/resumen")
        self.assertEqual(summary.status_code, 200)
        self.assertFalse(summary.json()["data"]["service_available"])
        self.assertTrue(summary.json()["degraded"])

        check = await self.http.get("/business/productos/1/stock/suficiente", params={"cantidad": 3})
        self.assertEqual(check.status_code, 200)
        self.assertEqual((check.json()["data"], check.json()["degraded"]), (False, True))

    async def test_validation_errors_are_not_degraded(self) -> None:
        response = await self.http.get("/business/productos/buscar", params={"texto": "a"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_argument")


if __name__ == "__main__":
    unittest.main()
