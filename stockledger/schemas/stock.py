"""Stock ledger schemas"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class StockAdjust(BaseModel):
    """Manual count of one size"""
    size: str = Field(..., min_length=1, max_length=50, description="Size label")
    new_stock: int = Field(..., ge=0, description="Counted stock")
    reason: str = Field(..., min_length=1, max_length=200, description="Reason")


class StockMovementResponse(BaseModel):
    id: int
    variant_id: int
    size: str
    movement_type: str
    type_display: str = ""
    quantity_change: int
    stock_before: int
    stock_after: int
    purchase_id: Optional[int] = None
    order_id: Optional[int] = None
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementListResponse(BaseModel):
    data: List[StockMovementResponse]
    total: int
    page: int
    limit: int


class StockDrift(BaseModel):
    """Counter that disagrees with its movement log"""
    variant_id: int
    size: str
    counter: int
    ledger: int
    difference: int


class StockRecalculateResponse(BaseModel):
    checked: int
    drifts: List[StockDrift] = []
    applied: bool = False
