"""Catalog API - products, variants and their size entries"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.db.transaction import run_atomic
from stockledger.schemas.catalog import (
    ProductCreate, ProductResponse, ProductListResponse, ProductUpdate, VariantAdd, VariantResponse
)
from stockledger.services import catalog as catalog_service

router = APIRouter()


@router.get("/", response_model=ProductListResponse)
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None)) -> Any:
    products, total = await catalog_service.list_products(db, page=page, limit=limit, search=search)
    return ProductListResponse(
        data=[catalog_service.build_product_response(p) for p in products],
        total=total,
        page=page,
        limit=limit)


@router.post("/", response_model=ProductResponse)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_in: ProductCreate) -> Any:
    """Create a product together with its variants and sizes"""
    product = await run_atomic(db, catalog_service.create_product, product_in)
    product = await catalog_service.get_product(db, product.id)
    return catalog_service.build_product_response(product)


@router.post("/variants", response_model=VariantResponse)
async def add_variant(
    *,
    db: AsyncSession = Depends(get_db),
    variant_in: VariantAdd) -> Any:
    variant = await run_atomic(db, catalog_service.add_variant, variant_in)
    variant = await catalog_service.get_variant(db, variant.id)
    return catalog_service.build_variant_response(variant)


@router.get("/variants/{variant_id}", response_model=VariantResponse)
async def get_variant(
    *,
    db: AsyncSession = Depends(get_db),
    variant_id: int) -> Any:
    variant = await catalog_service.get_variant(db, variant_id)
    return catalog_service.build_variant_response(variant)


@router.get("/{product_id}/variants", response_model=List[VariantResponse])
async def list_variants(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    product = await catalog_service.get_product(db, product_id)
    return [catalog_service.build_variant_response(v, product) for v in product.variants]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    product = await catalog_service.get_product(db, product_id)
    return catalog_service.build_product_response(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    product_in: ProductUpdate) -> Any:
    await run_atomic(db, catalog_service.update_product, product_id, product_in)
    product = await catalog_service.get_product(db, product_id)
    return catalog_service.build_product_response(product)


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    """Refused with 409 while a purchase, order or stock movement refers to it"""
    await run_atomic(db, catalog_service.delete_product, product_id)
    return {"message": "Product deleted", "id": product_id}
