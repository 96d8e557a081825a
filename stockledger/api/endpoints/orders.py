"""Sales order API"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.deps import get_db
from stockledger.db.transaction import run_atomic
from stockledger.models.status import OrderStatus
from stockledger.schemas.order import (
    OrderCreate, OrderUpdate, OrderResponse, OrderListResponse,
    OrderStatusTransition, OrderStatusAck
)
from stockledger.services import orders as order_service

router = APIRouter()


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    customer_id: Optional[int] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None)) -> Any:
    orders, total = await order_service.list_orders(
        db,
        customer_id=customer_id,
        status=status.value if status else None,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit)
    return OrderListResponse(
        data=[order_service.build_order_response(o) for o in orders],
        total=total,
        page=page,
        limit=limit)


@router.post("/", response_model=OrderResponse)
async def create_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_in: OrderCreate) -> Any:
    """Create an order; its quantities leave stock immediately"""
    order = await run_atomic(db, order_service.create_order, order_in)
    order = await order_service.get_order(db, order.id)
    return order_service.build_order_response(order)


@router.put("/status/{order_id}", response_model=OrderStatusAck)
async def transition_order_status(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int,
    transition_in: OrderStatusTransition) -> Any:
    """Move an order out of review; other requests are acknowledged and ignored"""
    return await run_atomic(
        db, order_service.transition_order_status,
        order_id, transition_in.status, transition_in.new_status)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int) -> Any:
    order = await order_service.get_order(db, order_id)
    return order_service.build_order_response(order)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int,
    order_in: OrderUpdate) -> Any:
    """Full replace; lines left out of items are dropped"""
    await run_atomic(db, order_service.update_order, order_id, order_in)
    order = await order_service.get_order(db, order_id)
    return order_service.build_order_response(order)


@router.delete("/{order_id}")
async def delete_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int) -> Any:
    await run_atomic(db, order_service.delete_order, order_id)
    return {"message": "Order deleted", "id": order_id}
