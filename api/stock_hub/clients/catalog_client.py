# stock_hub/clients/catalog_client.py
"""
Remote Catalog Client - business tier -> data tier over HTTP (httpx).

Every call takes the request's ``CallContext``: the id travels as
``X-Request-ID`` and the timeout is capped by the remaining deadline.

Failure mapping:
- connect errors, timeouts, expired deadline, 502/503/504 -> DependencyUnavailable
- error bodies ``{"error": code, ...}`` -> the same typed error as raised remotely
- anything else non-2xx -> RemoteServiceError (never degraded)
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from stock_hub.context import REQUEST_ID_HEADER, CallContext
from stock_hub.errors import (
    DependencyUnavailable, InvalidArgument, NotFound, RemoteServiceError, error_from_payload,
)
from stock_hub.models import (
    CategoryOut, CategoryStats, InventoryStats, LedgerOut, ProductIn, ProductOut,
    ProductValue, StockCheck, StockMutationOut,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "data-service"
UNAVAILABLE_STATUSES = {502, 503, 504}


class RemoteCatalogClient:
    def __init__(self, base_url: str, timeout: float = 5.0,
                 http: Optional[httpx.AsyncClient] = None, service: str = SERVICE_NAME):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.service = service
        self._http = http or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RemoteCatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(self, ctx: CallContext, method: str, path: str, operation: str,
                       params: Optional[Dict[str, Any]] = None, json: Any = None) -> Any:
        if ctx.expired:
            raise DependencyUnavailable(self.service, operation)

        params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._http.request(
                method, path,
                params=params or None,
                json=json,
                headers={REQUEST_ID_HEADER: ctx.request_id},
                timeout=ctx.timeout_for(self.timeout),
            )
        except httpx.TransportError as e:
            # TimeoutException is a TransportError too
            logger.warning(f"[{ctx.request_id}] {operation}: {type(e).__name__}: {e}")
            raise DependencyUnavailable(self.service, operation, cause=e) from e

        if response.status_code in UNAVAILABLE_STATUSES:
            logger.warning(f"[{ctx.request_id}] {operation}: HTTP {response.status_code}")
            raise DependencyUnavailable(self.service, operation)
        if response.status_code >= 400:
            raise self._error(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _error(response: httpx.Response) -> Exception:
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        error = error_from_payload(response.status_code, payload)
        if isinstance(error, RemoteServiceError):
            # body without a known code: fall back on the status
            if response.status_code in (400, 422):
                return InvalidArgument(error.message, status_code=response.status_code)
            if response.status_code == 404:
                return NotFound(error.message, status_code=response.status_code)
        return error

    # =========================================================================
    # Products
    # =========================================================================

    async def list_products(self, ctx: CallContext) -> List[ProductOut]:
        data = await self._request(ctx, "GET", "/data/productos", "list_products")
        return [ProductOut.model_validate(x) for x in data]

    async def get_product(self, ctx: CallContext, product_id: int) -> ProductOut:
        data = await self._request(ctx, "GET", f"/data/productos/{product_id}", "get_product")
        return ProductOut.model_validate(data)

    async def create_product(self, ctx: CallContext, product: ProductIn,
                             initial_quantity: Optional[int] = None,
                             threshold: Optional[int] = None) -> ProductOut:
        data = await self._request(
            ctx, "POST", "/data/productos", "create_product",
            params={"cantidadInicial": initial_quantity, "stockMinimo": threshold},
            json=product.model_dump(mode="json"),
        )
        return ProductOut.model_validate(data)

    async def update_product(self, ctx: CallContext, product_id: int, product: ProductIn) -> ProductOut:
        data = await self._request(ctx, "PUT", f"/data/productos/{product_id}", "update_product",
                                   json=product.model_dump(mode="json"))
        return ProductOut.model_validate(data)

    async def delete_product(self, ctx: CallContext, product_id: int) -> bool:
        await self._request(ctx, "DELETE", f"/data/productos/{product_id}", "delete_product")
        return True

    async def search_products(self, ctx: CallContext, text: str) -> List[ProductOut]:
        data = await self._request(ctx, "GET", "/data/productos/buscar", "search_products",
                                   params={"texto": text})
        return [ProductOut.model_validate(x) for x in data]

    async def products_by_category(self, ctx: CallContext, category_name: str) -> List[ProductOut]:
        # names may hold "/" or "?"; the data tier route takes the rest of the path
        path = f"/data/productos/categoria/{quote(category_name, safe='')}"
        data = await self._request(ctx, "GET", path, "products_by_category")
        return [ProductOut.model_validate(x) for x in data]

    async def products_by_price_range(self, ctx: CallContext, minimum: Decimal, maximum: Decimal) -> List[ProductOut]:
        data = await self._request(ctx, "GET", "/data/productos/precio", "products_by_price_range",
                                   params={"min": str(minimum), "max": str(maximum)})
        return [ProductOut.model_validate(x) for x in data]

    async def low_stock_products(self, ctx: CallContext) -> List[ProductOut]:
        data = await self._request(ctx, "GET", "/data/productos/stock-bajo", "low_stock_products")
        return [ProductOut.model_validate(x) for x in data]

    async def inventory_value_per_product(self, ctx: CallContext) -> List[ProductValue]:
        data = await self._request(ctx, "GET", "/data/productos/valor-inventario", "inventory_value_per_product")
        return [ProductValue.model_validate(x) for x in data]

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self, ctx: CallContext) -> List[CategoryOut]:
        data = await self._request(ctx, "GET", "/data/categorias", "list_categories")
        return [CategoryOut.model_validate(x) for x in data]

    async def category_statistics(self, ctx: CallContext) -> List[CategoryStats]:
        data = await self._request(ctx, "GET", "/data/categorias/estadisticas", "category_statistics")
        return [CategoryStats.model_validate(x) for x in data]

    # =========================================================================
    # Inventory
    # =========================================================================

    async def list_ledgers(self, ctx: CallContext) -> List[LedgerOut]:
        data = await self._request(ctx, "GET", "/data/inventario", "list_ledgers")
        return [LedgerOut.model_validate(x) for x in data]

    async def _ledger_list(self, ctx: CallContext, suffix: str, operation: str) -> List[LedgerOut]:
        data = await self._request(ctx, "GET", f"/data/inventario/{suffix}", operation)
        return [LedgerOut.model_validate(x) for x in data]

    async def low_stock(self, ctx: CallContext) -> List[LedgerOut]:
        return await self._ledger_list(ctx, "stock-bajo", "low_stock")

    async def critical_stock(self, ctx: CallContext) -> List[LedgerOut]:
        return await self._ledger_list(ctx, "stock-critico", "critical_stock")

    async def out_of_stock(self, ctx: CallContext) -> List[LedgerOut]:
        return await self._ledger_list(ctx, "sin-stock", "out_of_stock")

    async def replenishment(self, ctx: CallContext) -> List[LedgerOut]:
        return await self._ledger_list(ctx, "reabastecimiento", "replenishment")

    async def inventory_statistics(self, ctx: CallContext) -> InventoryStats:
        data = await self._request(ctx, "GET", "/data/inventario/estadisticas", "inventory_statistics")
        return InventoryStats.model_validate(data)

    async def total_value(self, ctx: CallContext) -> Decimal:
        data = await self._request(ctx, "GET", "/data/inventario/valor-total", "total_value")
        return Decimal(str(data["total_value"]))

    async def _mutate(self, ctx: CallContext, method: str, suffix: str, operation: str,
                      params: Dict[str, Any]) -> StockMutationOut:
        data = await self._request(ctx, method, f"/data/inventario/producto/{suffix}", operation, params=params)
        return StockMutationOut.model_validate(data)

    async def set_stock(self, ctx: CallContext, product_id: int, quantity: int,
                        revision: Optional[int] = None) -> StockMutationOut:
        return await self._mutate(ctx, "PUT", f"{product_id}/stock", "set_stock",
                                  {"cantidad": quantity, "revision": revision})

    async def increase_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> StockMutationOut:
        return await self._mutate(ctx, "PATCH", f"{product_id}/incrementar", "increase_stock",
                                  {"cantidad": amount, "revision": revision})

    async def decrease_stock(self, ctx: CallContext, product_id: int, amount: int,
                             revision: Optional[int] = None) -> StockMutationOut:
        return await self._mutate(ctx, "PATCH", f"{product_id}/decrementar", "decrease_stock",
                                  {"cantidad": amount, "revision": revision})

    async def has_sufficient_stock(self, ctx: CallContext, product_id: int, quantity: int) -> bool:
        data = await self._request(ctx, "GET", f"/data/inventario/producto/{product_id}/suficiente",
                                   "has_sufficient_stock", params={"cantidad": quantity})
        return StockCheck.model_validate(data).sufficient

    # =========================================================================
    # Health
    # =========================================================================

    async def health(self, ctx: CallContext) -> Dict[str, Any]:
        return await self._request(ctx, "GET", "/data/health", "health")
