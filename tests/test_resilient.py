"""Tests for ResilientCatalogFacade degradation and the business services built on it."""

from __future__ import annotations

import unittest
from decimal import Decimal

import httpx

from stock_hub.clients.catalog_client import RemoteCatalogClient
from stock_hub.clients.resilient import ResilientCatalogFacade
from stock_hub.context import CallContext
from stock_hub.errors import InsufficientStock, InvalidArgument, NotFound, RemoteServiceError
from stock_hub.models import ProductIn
from stock_hub.services.ledger import StockStatus
from stock_hub.services.product_business import ProductBusinessService
from stock_hub.services.report_business import ReportBusinessService

BASE_URL = "http://data-service"


def make_facade(handler) -> ResilientCatalogFacade:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return ResilientCatalogFacade(RemoteCatalogClient(BASE_URL, timeout=2.0, http=http))


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def product_payload(product_id: int = 1, stock=4, threshold=10, price: str = "2.50") -> dict:
    return {
        "id": product_id, "name": f"Producto {product_id}", "price": price, "category_id": 1,
        "category_name": "General", "is_active": True, "stock": stock, "threshold": threshold,
    }


class DegradedDependencyTests(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self) -> None:
        self.facade = make_facade(unreachable)
        self.ctx = CallContext(request_id="degraded-test")

    async def asyncTearDown(self) -> None:
        await self.facade.client.aclose()

    async def test_list_read_returns_empty_degraded(self) -> None:
        result = await self.facade.list_products(self.ctx)
        self.assertEqual(result.value, [])
        self.assertTrue(result.degraded)

    async def test_stock_mutation_returns_absent_degraded(self) -> None:
        result = await self.facade.decrease_stock(self.ctx, 1, 2)
        self.assertIsNone(result.value)
        self.assertTrue(result.degraded)

    async def test_single_get_and_writes_return_none(self) -> None:
        product = ProductIn(name="Tornillo", price=Decimal("1.00"), category_id=1)
        for result in (
            await self.facade.get_product(self.ctx, 1),
            await self.facade.create_product(self.ctx, product, 5, 2),
            await self.facade.delete_product(self.ctx, 1),
            await self.facade.set_stock(self.ctx, 1, 3),
        ):
            self.assertIsNone(result.value)
            self.assertTrue(result.degraded)

    async def test_aggregates_fall_back_to_zero(self) -> None:
        total = await self.facade.total_value(self.ctx)
        stats = await self.facade.inventory_statistics(self.ctx)

        self.assertEqual(total.value, Decimal("0"))
        self.assertEqual(stats.value.total_products, 0)
        self.assertFalse(stats.value.service_available)
        self.assertTrue(total.degraded and stats.degraded)

    async def test_health_reports_down(self) -> None:
        result = await self.facade.health(self.ctx)
        self.assertEqual(result.value["status"], "DOWN")
        self.assertEqual(result.value["service"], "data-service")

    async def test_reports_are_zero_and_flagged(self) -> None:
        reports = ReportBusinessService(self.facade)

        state = await reports.stock_state(self.ctx)
        alerts = await reports.alerts(self.ctx)
        financial = await reports.financial(self.ctx)
        categories = await reports.categories(self.ctx)

        self.assertTrue(all(r.degraded for r in (state, alerts, financial, categories)))
        self.assertEqual(state.total_products, 0)
        self.assertEqual(alerts.recommendations, {})
        self.assertEqual(financial.total_value, Decimal("0"))
        self.assertEqual(categories.category_with_most_products, "N/A")


class PassThroughTests(unittest.IsolatedAsyncioTestCase):

    async def test_not_found_is_reraised_unchanged(self) -> None:
        body = {"error": "not_found", "message": "Product not found with id: 9"}
        facade = make_facade(lambda request: httpx.Response(404, json=body))
        with self.assertRaises(NotFound) as caught:
            await facade.get_product(CallContext(), 9)
        self.assertEqual(caught.exception.message, "Product not found with id: 9")
        await facade.client.aclose()

    async def test_insufficient_stock_is_reraised(self) -> None:
        body = {"error": "insufficient_stock", "message": "x", "product_id": 1, "available": 1, "requested": 2}
        facade = make_facade(lambda request: httpx.Response(400, json=body))
        with self.assertRaises(InsufficientStock):
            await facade.decrease_stock(CallContext(), 1, 2)
        await facade.client.aclose()

    async def test_unexpected_remote_failure_propagates(self) -> None:
        facade = make_facade(lambda request: httpx.Response(500, json={"error": "internal_error", "message": "x"}))
        with self.assertRaises(RemoteServiceError):
            await facade.list_products(CallContext())
        await facade.client.aclose()

    async def test_degradation_is_decided_per_call(self) -> None:
        calls = []

        def flaky(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200, json=[product_payload()])

        facade = make_facade(flaky)
        first = await facade.list_products(CallContext())
        second = await facade.list_products(CallContext())
        await facade.client.aclose()

        self.assertTrue(first.degraded)
        self.assertFalse(second.degraded)
        self.assertEqual(len(second.value), 1)


class ProductBusinessServiceTests(unittest.IsolatedAsyncioTestCase):

    async def test_products_are_enriched_with_status_and_value(self) -> None:
        payload = [product_payload(1, stock=4, threshold=10), product_payload(2, stock=None, threshold=None)]
        facade = make_facade(lambda request: httpx.Response(200, json=payload))
        result = await ProductBusinessService(facade).list_products(CallContext())
        await facade.client.aclose()

        enriched, bare = result.value
        self.assertEqual(enriched.stock_status, StockStatus.CRITICO)
        self.assertEqual(enriched.inventory_value, Decimal("10.00"))
        self.assertIsNone(bare.stock_status)
        self.assertFalse(result.degraded)

    async def test_validation_happens_before_any_call(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        facade = make_facade(handler)
        service = ProductBusinessService(facade)
        ctx = CallContext()

        with self.assertRaises(InvalidArgument):
            await service.search(ctx, "a")
        with self.assertRaises(InvalidArgument):
            await service.by_price_range(ctx, Decimal("10"), Decimal("1"))
        with self.assertRaises(InvalidArgument):
            await service.decrease_stock(ctx, 1, 0)
        with self.assertRaises(InvalidArgument):
            await service.create_product(
                ctx, ProductIn(name="Tuerca", price=Decimal("1.00"), category_id=1), initial_quantity=-1,
            )
        unchecked = ProductIn.model_construct(name="X", price=Decimal("1.00"), category_id=1, is_active=True)
        with self.assertRaises(InvalidArgument):
            await service.create_product(ctx, unchecked)
        await facade.client.aclose()

        self.assertEqual(calls, [])


if __name__ == "__main__":
    unittest.main()
