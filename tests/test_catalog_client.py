"""Tests for RemoteCatalogClient error mapping and request shaping (httpx.MockTransport)."""

from __future__ import annotations

import json
import time
import unittest
from decimal import Decimal

import httpx

from stock_hub.clients.catalog_client import RemoteCatalogClient
from stock_hub.context import REQUEST_ID_HEADER, CallContext
from stock_hub.errors import (
    ConcurrencyConflict, DependencyUnavailable, InsufficientStock, InvalidArgument,
    NotFound, RemoteServiceError,
)
from stock_hub.exception_handlers import error_response

BASE_URL = "http://data-service"


def make_client(handler) -> RemoteCatalogClient:
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return RemoteCatalogClient(BASE_URL, timeout=2.0, http=http)


def ledger_payload(quantity: int = 3, threshold: int = 5) -> dict:
    return {
        "id": 1, "product_id": 7, "quantity": quantity, "threshold": threshold, "revision": 1,
        "status": "BAJO", "needs_replenishment": False, "inventory_value": "30.00",
    }


class RemoteCatalogClientTests(unittest.IsolatedAsyncioTestCase):

    async def test_request_id_and_params_are_sent(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["request_id"] = request.headers.get(REQUEST_ID_HEADER)
            return httpx.Response(200, json={
                "ledger": ledger_payload(), "previous_status": "NORMAL", "status": "BAJO",
                "crossed_into_critical": False, "attempts": 1,
            })

        async with make_client(handler) as client:
            result = await client.decrease_stock(CallContext(request_id="req-1"), 7, 2, revision=4)

        self.assertEqual(seen["path"], "/data/inventario/producto/7/decrementar")
        self.assertEqual(seen["params"], {"cantidad": "2", "revision": "4"})
        self.assertEqual(seen["request_id"], "req-1")
        self.assertEqual(result.ledger.quantity, 3)

    async def test_optional_params_are_omitted(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={
                "ledger": ledger_payload(), "previous_status": "NORMAL", "status": "BAJO",
            })

        async with make_client(handler) as client:
            await client.increase_stock(CallContext(), 7, 2)
        self.assertEqual(seen["params"], {"cantidad": "2"})

    async def test_category_name_is_one_encoded_segment(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.url.raw_path, dict(request.url.params)))
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            await client.products_by_category(CallContext(), "Ropa?Kids")
            await client.products_by_category(CallContext(), "Audio/Video")

        self.assertEqual(seen, [
            (b"/data/productos/categoria/Ropa%3FKids", {}),
            (b"/data/productos/categoria/Audio%2FVideo", {}),
        ])

    async def test_lists_and_scalars_are_parsed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("valor-total"):
                return httpx.Response(200, json={"total_value": "150.50"})
            return httpx.Response(200, json=[ledger_payload(), ledger_payload(0, 5)])

        async with make_client(handler) as client:
            ledgers = await client.low_stock(CallContext())
            total = await client.total_value(CallContext())

        self.assertEqual([l.quantity for l in ledgers], [3, 0])
        self.assertEqual(total, Decimal("150.50"))

    async def test_typed_errors_are_rebuilt(self) -> None:
        cases = [
            (404, {"error": "not_found", "message": "Product not found with id: 9"}, NotFound),
            (400, {"error": "insufficient_stock", "message": "x", "product_id": 7,
                   "available": 1, "requested": 2}, InsufficientStock),
            (409, {"error": "concurrency_conflict", "message": "x", "product_id": 7,
                   "expected_revision": 0, "actual_revision": 1}, ConcurrencyConflict),
            (422, {"detail": [{"msg": "field required"}]}, InvalidArgument),
            (500, {"error": "internal_error", "message": "boom"}, RemoteServiceError),
        ]
        for status, body, expected in cases:
            with self.subTest(status=status, expected=expected.__name__):
                client = make_client(lambda request, s=status, b=body: httpx.Response(s, json=b))
                with self.assertRaises(expected):
                    await client.get_product(CallContext(), 9)
                await client.aclose()

    async def test_insufficient_stock_keeps_its_numbers(self) -> None:
        body = {"error": "insufficient_stock", "message": "x", "product_id": 7, "available": 1, "requested": 2}
        async with make_client(lambda request: httpx.Response(400, json=body)) as client:
            with self.assertRaises(InsufficientStock) as caught:
                await client.decrease_stock(CallContext(), 7, 2)
        self.assertEqual((caught.exception.available, caught.exception.requested), (1, 2))

    async def test_transport_failures_become_dependency_unavailable(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        for handler in (refuse, stall, lambda request: httpx.Response(503, json={})):
            async with make_client(handler) as client:
                with self.assertRaises(DependencyUnavailable) as caught:
                    await client.list_products(CallContext())
            self.assertEqual(caught.exception.operation, "list_products")

    async def test_expired_deadline_does_not_call_remote(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        expired = CallContext(request_id="late", deadline=time.monotonic() - 1)
        async with make_client(handler) as client:
            with self.assertRaises(DependencyUnavailable):
                await client.list_categories(expired)
        self.assertEqual(calls, [])


class ErrorResponseTests(unittest.TestCase):

    def test_status_defaults_to_error_type(self) -> None:
        response = error_response(NotFound("Product not found with id: 9"))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(json.loads(response.body)["error"], "not_found")

    def test_explicit_status_wins(self) -> None:
        self.assertEqual(error_response(InvalidArgument("bad"), status_code=422).status_code, 422)


class CallContextTests(unittest.TestCase):

    def test_timeout_is_capped_by_remaining_deadline(self) -> None:
        ctx = CallContext.start(budget_seconds=1.0)
        self.assertLessEqual(ctx.timeout_for(5.0), 1.0)
        self.assertEqual(CallContext().timeout_for(5.0), 5.0)
        self.assertFalse(ctx.expired)

    def test_start_keeps_given_request_id(self) -> None:
        self.assertEqual(CallContext.start(request_id="abc").request_id, "abc")
        self.assertTrue(CallContext.start().request_id)


if __name__ == "__main__":
    unittest.main()
