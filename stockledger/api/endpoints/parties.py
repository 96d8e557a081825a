"""Party directory API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.db.transaction import run_atomic
from stockledger.schemas.party import (
    SupplierCreate, SupplierResponse, SupplierListResponse,
    CustomerCreate, CustomerResponse, CustomerListResponse, CustomerUpdate, CustomerDetailResponse
)
from stockledger.services import catalog as catalog_service

router = APIRouter()


@router.get("/suppliers", response_model=SupplierListResponse)
async def list_suppliers(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None)) -> Any:
    suppliers = await catalog_service.list_suppliers(db, search=search)
    return SupplierListResponse(
        data=[SupplierResponse.model_validate(s) for s in suppliers],
        total=len(suppliers))


@router.post("/suppliers", response_model=SupplierResponse)
async def create_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_in: SupplierCreate) -> Any:
    supplier = await run_atomic(db, catalog_service.create_supplier, supplier_in)
    return SupplierResponse.model_validate(supplier)


@router.get("/customers", response_model=CustomerListResponse)
async def list_customers(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None)) -> Any:
    customers = await catalog_service.list_customers(db, search=search)
    return CustomerListResponse(
        data=[CustomerResponse.model_validate(c) for c in customers],
        total=len(customers))


@router.post("/customers", response_model=CustomerResponse)
async def create_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_in: CustomerCreate) -> Any:
    customer = await run_atomic(db, catalog_service.create_customer, customer_in)
    return CustomerResponse.model_validate(customer)


@router.get("/customers/{customer_id}", response_model=CustomerDetailResponse)
async def get_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int) -> Any:
    """Customer with order history"""
    return await catalog_service.get_customer(db, customer_id)


@router.patch("/customers/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int,
    customer_in: CustomerUpdate) -> Any:
    customer = await run_atomic(db, catalog_service.update_customer, customer_id, customer_in)
    return CustomerResponse.model_validate(customer)


@router.delete("/customers/{customer_id}")
async def delete_customer(
    *,
    db: AsyncSession = Depends(get_db),
    customer_id: int) -> Any:
    await run_atomic(db, catalog_service.delete_customer, customer_id)
    return {"message": "Customer deleted", "id": customer_id}
