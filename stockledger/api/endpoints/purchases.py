"""Purchase order API"""

from typing import Any, Optional
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.db.transaction import run_atomic
from stockledger.models.status import PurchaseStatus
from stockledger.schemas.purchase import (
    PurchaseCreate, PurchaseCreatedResponse, PurchaseApproveResponse, PurchaseFilters,
    PurchaseListResponse, PurchaseResponse, PurchaseStatusChange
)
from stockledger.services import purchases as purchase_service
from stockledger.services import reports as report_service

router = APIRouter()


@router.get("/", response_model=PurchaseListResponse)
async def list_purchases(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: Optional[int] = Query(None),
    status: Optional[PurchaseStatus] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0)) -> Any:
    """Purchases with per-purchase item summary and overall totals"""
    filters = PurchaseFilters(
        supplier_id=supplier_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount)
    return await report_service.list_purchases(db, filters)


@router.post("/", response_model=PurchaseCreatedResponse)
async def record_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_in: PurchaseCreate) -> Any:
    """Record a purchase; stock is added per the receipt policy"""
    purchase = await run_atomic(db, purchase_service.record_purchase, purchase_in)
    return PurchaseCreatedResponse(id=purchase.id)


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    purchase = await purchase_service.get_purchase(db, purchase_id)
    return purchase_service.build_purchase_response(purchase)


@router.post("/{purchase_id}/approve", response_model=PurchaseApproveResponse)
async def approve_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """Mark as received; 400 when it already is"""
    await run_atomic(db, purchase_service.approve_purchase, purchase_id)
    purchase = await purchase_service.get_purchase(db, purchase_id)
    return PurchaseApproveResponse(
        status=purchase.status,
        purchase_order=purchase_service.build_purchase_response(purchase))


@router.post("/{purchase_id}/cancel", response_model=PurchaseResponse)
async def cancel_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    await run_atomic(db, purchase_service.cancel_purchase, purchase_id)
    purchase = await purchase_service.get_purchase(db, purchase_id)
    return purchase_service.build_purchase_response(purchase)


@router.post("/{purchase_id}/status", response_model=PurchaseResponse)
async def change_purchase_status(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int,
    status_in: PurchaseStatusChange) -> Any:
    await run_atomic(db, purchase_service.change_purchase_status, purchase_id, status_in.status)
    purchase = await purchase_service.get_purchase(db, purchase_id)
    return purchase_service.build_purchase_response(purchase)
