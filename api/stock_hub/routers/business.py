# stock_hub/routers/business.py
"""
Business Router - products and stock as seen by clients of the business tier.

Every answer is an Envelope: ``data``, ``degraded`` and ``request_id``.
Reads always answer (empty data when degraded); writes that could not reach
the data tier answer 503 with ``data: null, degraded: true``.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from stock_hub.clients.resilient import ResilientCatalogFacade
from stock_hub.context import CallContext
from stock_hub.models import Envelope, ProductIn, ProductOut, StockMutationOut
from stock_hub.routers.deps import (
    envelope, get_call_context, get_facade, get_products, write_envelope,
)
from stock_hub.services.product_business import ProductBusinessService

router = APIRouter(prefix="/business", tags=["Business"])


# ============================================================================
# Products - reads
# ============================================================================

@router.get("/productos", response_model=Envelope[List[ProductOut]])
async def list_products(ctx: CallContext = Depends(get_call_context),
                        service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.list_products(ctx), ctx)


@router.get("/productos/buscar", response_model=Envelope[List[ProductOut]])
async def search_products(texto: str = Query(...), ctx: CallContext = Depends(get_call_context),
                          service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.search(ctx, texto), ctx)


@router.get("/productos/categoria/{nombre:path}", response_model=Envelope[List[ProductOut]])
async def products_by_category(nombre: str, ctx: CallContext = Depends(get_call_context),
                               service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.by_category(ctx, nombre), ctx)


@router.get("/productos/precio", response_model=Envelope[List[ProductOut]])
async def products_by_price_range(
    minimum: Decimal = Query(..., alias="min"),
    maximum: Decimal = Query(..., alias="max"),
    ctx: CallContext = Depends(get_call_context),
    service: ProductBusinessService = Depends(get_products),
):
    return envelope(await service.by_price_range(ctx, minimum, maximum), ctx)


@router.get("/productos/stock-bajo", response_model=Envelope[List[ProductOut]])
async def low_stock_products(ctx: CallContext = Depends(get_call_context),
                             service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.low_stock(ctx), ctx)


@router.get("/productos/{product_id}/stock/suficiente", response_model=Envelope[bool])
async def has_sufficient_stock(product_id: int, cantidad: int = Query(...),
                               ctx: CallContext = Depends(get_call_context),
                               service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.has_sufficient_stock(ctx, product_id, cantidad), ctx)


@router.get("/productos/{product_id}", response_model=Envelope[Optional[ProductOut]])
async def get_product(product_id: int, ctx: CallContext = Depends(get_call_context),
                      service: ProductBusinessService = Depends(get_products)):
    return envelope(await service.get_product(ctx, product_id), ctx)


# ============================================================================
# Products - writes
# ============================================================================

@router.post("/productos", response_model=Envelope[Optional[ProductOut]], status_code=201)
async def create_product(
    product: ProductIn,
    response: Response,
    cantidad_inicial: Optional[int] = Query(None, alias="cantidadInicial"),
    stock_minimo: Optional[int] = Query(None, alias="stockMinimo"),
    ctx: CallContext = Depends(get_call_context),
    service: ProductBusinessService = Depends(get_products),
):
    result = await service.create_product(ctx, product, cantidad_inicial, stock_minimo)
    return write_envelope(result, ctx, response)


@router.put("/productos/{product_id}", response_model=Envelope[Optional[ProductOut]])
async def update_product(product_id: int, product: ProductIn, response: Response,
                         ctx: CallContext = Depends(get_call_context),
                         service: ProductBusinessService = Depends(get_products)):
    return write_envelope(await service.update_product(ctx, product_id, product), ctx, response)


@router.delete("/productos/{product_id}", response_model=Envelope[Optional[bool]])
async def delete_product(product_id: int, response: Response,
                         ctx: CallContext = Depends(get_call_context),
                         service: ProductBusinessService = Depends(get_products)):
    return write_envelope(await service.delete_product(ctx, product_id), ctx, response)


# ============================================================================
# Stock
# ============================================================================

@router.patch("/productos/{product_id}/stock/incrementar", response_model=Envelope[Optional[StockMutationOut]])
async def increase_stock(product_id: int, response: Response, cantidad: int = Query(...),
                         revision: Optional[int] = Query(None),
                         ctx: CallContext = Depends(get_call_context),
                         service: ProductBusinessService = Depends(get_products)):
    return write_envelope(await service.increase_stock(ctx, product_id, cantidad, revision), ctx, response)


@router.patch("/productos/{product_id}/stock/decrementar", response_model=Envelope[Optional[StockMutationOut]])
async def decrease_stock(product_id: int, response: Response, cantidad: int = Query(...),
                         revision: Optional[int] = Query(None),
                         ctx: CallContext = Depends(get_call_context),
                         service: ProductBusinessService = Depends(get_products)):
    return write_envelope(await service.decrease_stock(ctx, product_id, cantidad, revision), ctx, response)


@router.put("/productos/{product_id}/stock", response_model=Envelope[Optional[StockMutationOut]])
async def set_stock(product_id: int, response: Response, cantidad: int = Query(...),
                    revision: Optional[int] = Query(None),
                    ctx: CallContext = Depends(get_call_context),
                    service: ProductBusinessService = Depends(get_products)):
    return write_envelope(await service.set_stock(ctx, product_id, cantidad, revision), ctx, response)


# ============================================================================
# Health
# ============================================================================

@router.get("/health")
async def health(ctx: CallContext = Depends(get_call_context),
                 facade: ResilientCatalogFacade = Depends(get_facade)) -> Dict[str, Any]:
    data_service = await facade.health(ctx)
    return {
        "status": "UP" if not data_service.degraded else "DEGRADED",
        "service": "business-service",
        "data_service": data_service.value,
        "degraded": data_service.degraded,
        "request_id": ctx.request_id,
    }
