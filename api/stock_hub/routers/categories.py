# stock_hub/routers/categories.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stock_hub.database import get_session
from stock_hub.models import CategoryIn, CategoryOut, CategoryStats
from stock_hub.services.catalog import CategoryService

router = APIRouter(prefix="/data/categorias", tags=["Categories"])


def get_categories(db: AsyncSession = Depends(get_session)) -> CategoryService:
    return CategoryService(db)


@router.get("", response_model=List[CategoryOut])
async def list_categories(service: CategoryService = Depends(get_categories)):
    return await service.list_all()


@router.get("/buscar", response_model=List[CategoryOut])
async def search_categories(texto: str = Query(...), service: CategoryService = Depends(get_categories)):
    return await service.search(texto)


@router.get("/con-productos", response_model=List[CategoryOut])
async def categories_with_products(service: CategoryService = Depends(get_categories)):
    return await service.with_products()


@router.get("/estadisticas", response_model=List[CategoryStats])
async def category_statistics(service: CategoryService = Depends(get_categories)):
    return await service.statistics()


@router.get("/nombre/{nombre}", response_model=CategoryOut)
async def get_category_by_name(nombre: str, service: CategoryService = Depends(get_categories)):
    return await service.get_by_name(nombre)


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: int, service: CategoryService = Depends(get_categories)):
    return await service.get(category_id)


@router.post("", response_model=CategoryOut, status_code=201)
async def create_category(category: CategoryIn, service: CategoryService = Depends(get_categories)):
    return await service.create(category)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(category_id: int, category: CategoryIn,
                          service: CategoryService = Depends(get_categories)):
    return await service.update(category_id, category)


@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, service: CategoryService = Depends(get_categories)):
    """Refused with 409 resource_in_use while the category still has products."""
    await service.delete(category_id)
    return Response(status_code=204)
