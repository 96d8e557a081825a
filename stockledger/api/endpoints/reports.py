"""Reporting API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.schemas.report import DashboardData, EntityCounts, LowStockResponse
from stockledger.services import reports as report_service

router = APIRouter()


@router.get("/counts", response_model=EntityCounts)
async def get_counts(*, db: AsyncSession = Depends(get_db)) -> Any:
    return await report_service.get_counts(db)


@router.get("/dashboard", response_model=DashboardData)
async def get_dashboard(
    *,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(10, ge=1, le=50)) -> Any:
    """Counts plus the most recently added products"""
    return await report_service.dashboard(db, limit=limit)


@router.get("/low-stock", response_model=LowStockResponse)
async def get_low_stock(
    *,
    db: AsyncSession = Depends(get_db),
    threshold: Optional[int] = Query(None, ge=0)) -> Any:
    return await report_service.low_stock(db, threshold)
