# stock_hub/routers/products.py
"""
Products Router - data tier catalog endpoints.

Static paths are declared before ``/{product_id}`` so they are not swallowed
by the id route.
"""
from __future__ import annotations
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stock_hub.database import get_session
from stock_hub.models import ProductIn, ProductOut, ProductValue
from stock_hub.services.catalog import ProductCatalogService

router = APIRouter(prefix="/data/productos", tags=["Products"])


def get_catalog(db: AsyncSession = Depends(get_session)) -> ProductCatalogService:
    return ProductCatalogService(db)


# ============================================================================
# Queries
# ============================================================================

@router.get("", response_model=List[ProductOut])
async def list_products(catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.list_active()


@router.get("/buscar", response_model=List[ProductOut])
async def search_products(texto: str = Query(...), catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.search(texto)


@router.get("/precio", response_model=List[ProductOut])
async def products_by_price_range(
    minimum: Decimal = Query(..., alias="min"),
    maximum: Decimal = Query(..., alias="max"),
    catalog: ProductCatalogService = Depends(get_catalog),
):
    return await catalog.by_price_range(minimum, maximum)


@router.get("/categoria/{nombre:path}", response_model=List[ProductOut])
async def products_by_category(nombre: str, catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.by_category_name(nombre)


@router.get("/stock-bajo", response_model=List[ProductOut])
async def low_stock_products(catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.low_stock()


@router.get("/stock-critico", response_model=List[ProductOut])
async def critical_stock_products(catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.critical_stock()


@router.get("/sin-stock", response_model=List[ProductOut])
async def out_of_stock_products(catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.out_of_stock()


@router.get("/valor-inventario", response_model=List[ProductValue])
async def inventory_value_per_product(catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.inventory_value_per_product()


@router.get("/recientes", response_model=List[ProductOut])
async def recent_products(dias: int = Query(7), catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.recent(dias)


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.get(product_id)


# ============================================================================
# Writes
# ============================================================================

@router.post("", response_model=ProductOut, status_code=201)
async def create_product(
    product: ProductIn,
    cantidad_inicial: Optional[int] = Query(None, alias="cantidadInicial"),
    stock_minimo: Optional[int] = Query(None, alias="stockMinimo"),
    catalog: ProductCatalogService = Depends(get_catalog),
):
    """Create a product; with ``cantidadInicial`` its stock ledger is created in the same transaction."""
    return await catalog.create(product, cantidad_inicial, stock_minimo)


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(product_id: int, product: ProductIn,
                         catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.update(product_id, product)


@router.delete("/{product_id}", status_code=204)
async def delete_product(product_id: int, catalog: ProductCatalogService = Depends(get_catalog)):
    await catalog.deactivate(product_id)
    return Response(status_code=204)


@router.delete("/{product_id}/permanente", status_code=204)
async def purge_product(product_id: int, catalog: ProductCatalogService = Depends(get_catalog)):
    await catalog.purge(product_id)
    return Response(status_code=204)


@router.patch("/{product_id}/reactivar", response_model=ProductOut)
async def reactivate_product(product_id: int, catalog: ProductCatalogService = Depends(get_catalog)):
    return await catalog.reactivate(product_id)
