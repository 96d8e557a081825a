"""Stock ledger API - movement history, manual counts, audit"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.db.transaction import run_atomic
from stockledger.schemas.stock import (
    StockAdjust, StockMovementResponse, StockMovementListResponse, StockRecalculateResponse
)
from stockledger.services import stock_ledger

router = APIRouter()


def build_movement_response(movement) -> StockMovementResponse:
    # type_display is a model property
    return StockMovementResponse.model_validate(movement)


@router.get("/movements", response_model=StockMovementListResponse)
async def list_movements(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    variant_id: Optional[int] = Query(None),
    size: Optional[str] = Query(None),
    movement_type: Optional[str] = Query(None),
    purchase_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None)) -> Any:
    movements, total = await stock_ledger.list_movements(
        db,
        variant_id=variant_id,
        size=size,
        movement_type=movement_type,
        purchase_id=purchase_id,
        order_id=order_id,
        page=page,
        limit=limit)
    return StockMovementListResponse(
        data=[build_movement_response(m) for m in movements],
        total=total,
        page=page,
        limit=limit)


@router.post("/variants/{variant_id}/adjust", response_model=StockMovementResponse)
async def adjust_stock(
    *,
    db: AsyncSession = Depends(get_db),
    variant_id: int,
    adjust_in: StockAdjust) -> Any:
    """Set one size counter to a counted value"""
    movement = await run_atomic(
        db, stock_ledger.adjust_stock,
        variant_id, adjust_in.size, adjust_in.new_stock, adjust_in.reason)
    return build_movement_response(movement)


@router.post("/recalculate", response_model=StockRecalculateResponse)
async def recalculate_stock(
    *,
    db: AsyncSession = Depends(get_db),
    variant_id: Optional[int] = Query(None),
    apply: bool = Query(False, description="Rewrite drifting counters from the movement log")) -> Any:
    """Compare counters with the movement log"""
    return await run_atomic(db, stock_ledger.recalculate_stock, variant_id=variant_id, apply=apply)
