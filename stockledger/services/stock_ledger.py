"""
Stock ledger - the only code that writes size counters

Every counter change rewrites the variant's whole size collection and
appends a StockMovement in the same transaction. Callers pass their
session; committing is left to run_atomic.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from stockledger.core.config import settings
from stockledger.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from stockledger.core.logging_config import get_logger
from stockledger.models.product import Variant
from stockledger.models.stock_movement import StockMovement
from stockledger.schemas.stock import StockDrift, StockRecalculateResponse

logger = get_logger(__name__)


async def load_variant(db: AsyncSession, variant_id: int, for_update: bool = True) -> Variant:
    """Load a variant, locking its row where the backend supports it"""
    query = select(Variant).where(Variant.id == variant_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    variant = result.scalar_one_or_none()
    if not variant:
        raise NotFoundError(f"Variant {variant_id} not found", field="variant_id")
    return variant


def require_size(variant: Variant, size: str) -> dict:
    entry = variant.find_size(size)
    if entry is None:
        raise NotFoundError(f"Size '{size}' not found on variant {variant.id} ({variant.name})", field="size")
    return entry


async def move_stock(
    db: AsyncSession,
    variant_id: int,
    size: str,
    change: int,
    movement_type: str,
    purchase_id: int = None,
    order_id: int = None,
    reason: str = None,
    check_available: bool = False) -> StockMovement:
    """
    Apply a signed change to one size counter and log it

    With check_available the counter may not drop below zero unless
    ALLOW_NEGATIVE_STOCK is set.
    """
    variant = await load_variant(db, variant_id)
    entry = require_size(variant, size)

    before = int(entry["stock"])
    after = before + change

    if change < 0 and check_available and after < 0 and not settings.ALLOW_NEGATIVE_STOCK:
        raise InsufficientStockError(
            f"Insufficient stock for {variant.name} / {size}: available {before}, needed {-change}",
            field="quantity",
        )

    variant.sizes = variant.with_stock(size, after)

    movement = StockMovement(
        variant_id=variant.id,
        size=size,
        movement_type=movement_type,
        quantity_change=change,
        stock_before=before,
        stock_after=after,
        purchase_id=purchase_id,
        order_id=order_id,
        reason=reason)
    db.add(movement)

    # the version check on Variant happens here
    await db.flush()

    logger.info(f"📦 {movement_type}: variant {variant.id} size {size} {before} -> {after} ({change:+d})")
    return movement


async def receive_stock(db: AsyncSession, variant_id: int, size: str, quantity: int,
                        purchase_id: int = None, reason: str = None) -> StockMovement:
    """Goods in from a purchase"""
    return await move_stock(db, variant_id, size, quantity, "purchase_receipt",
                            purchase_id=purchase_id, reason=reason)


async def reverse_receipt(db: AsyncSession, variant_id: int, size: str, quantity: int,
                          purchase_id: int = None, reason: str = None) -> StockMovement:
    """Take back a receipt when its purchase is cancelled"""
    return await move_stock(db, variant_id, size, -quantity, "purchase_reversal",
                            purchase_id=purchase_id, reason=reason, check_available=True)


async def issue_stock(db: AsyncSession, variant_id: int, size: str, quantity: int,
                      order_id: int = None, reason: str = None) -> StockMovement:
    """Goods out to an order"""
    return await move_stock(db, variant_id, size, -quantity, "order_issue",
                            order_id=order_id, reason=reason, check_available=True)


async def restock(db: AsyncSession, variant_id: int, size: str, quantity: int,
                  order_id: int = None, reason: str = None) -> StockMovement:
    """Goods back from an edited or deleted order"""
    return await move_stock(db, variant_id, size, quantity, "order_restock",
                            order_id=order_id, reason=reason)


async def adjust_stock(db: AsyncSession, variant_id: int, size: str, new_stock: int, reason: str) -> StockMovement:
    """Manual count: set a counter to what is on the shelf"""
    variant = await load_variant(db, variant_id)
    entry = require_size(variant, size)
    change = new_stock - int(entry["stock"])
    if change == 0:
        raise ValidationError("Stock count unchanged", field="new_stock")
    return await move_stock(db, variant_id, size, change, "adjustment", reason=reason)


def record_opening_stock(db: AsyncSession, variant: Variant) -> List[StockMovement]:
    """Log the stock a variant was created with (variant must have an id)"""
    movements = []
    for entry in variant.sizes or []:
        stock = int(entry.get("stock") or 0)
        if stock == 0:
            continue
        movement = StockMovement(
            variant_id=variant.id,
            size=entry["size"],
            movement_type="opening",
            quantity_change=stock,
            stock_before=0,
            stock_after=stock,
            reason="Opening stock")
        db.add(movement)
        movements.append(movement)
    return movements


async def list_movements(
    db: AsyncSession,
    variant_id: Optional[int] = None,
    size: Optional[str] = None,
    movement_type: Optional[str] = None,
    purchase_id: Optional[int] = None,
    order_id: Optional[int] = None,
    page: int = 1,
    limit: int = 50) -> Tuple[List[StockMovement], int]:
    conditions = []
    if variant_id:
        conditions.append(StockMovement.variant_id == variant_id)
    if size:
        conditions.append(StockMovement.size == size)
    if movement_type:
        conditions.append(StockMovement.movement_type == movement_type)
    if purchase_id:
        conditions.append(StockMovement.purchase_id == purchase_id)
    if order_id:
        conditions.append(StockMovement.order_id == order_id)

    query = select(StockMovement)
    count_query = select(func.count(StockMovement.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(StockMovement.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def _ledger_totals(db: AsyncSession, variant_id: Optional[int] = None) -> Dict[Tuple[int, str], int]:
    query = select(
        StockMovement.variant_id,
        StockMovement.size,
        func.coalesce(func.sum(StockMovement.quantity_change), 0),
    ).group_by(StockMovement.variant_id, StockMovement.size)
    if variant_id:
        query = query.where(StockMovement.variant_id == variant_id)
    result = await db.execute(query)
    return {(row[0], row[1]): int(row[2]) for row in result}


async def recalculate_stock(
    db: AsyncSession,
    variant_id: Optional[int] = None,
    apply: bool = False) -> StockRecalculateResponse:
    """
    Compare every size counter with the sum of its movements

    With apply, drifting counters are rewritten from the log.
    """
    totals = await _ledger_totals(db, variant_id)

    query = select(Variant).order_by(Variant.id).execution_options(populate_existing=True)
    if variant_id:
        query = query.where(Variant.id == variant_id)
    if apply:
        query = query.with_for_update()
    variants = (await db.execute(query)).scalars().all()
    if variant_id and not variants:
        raise NotFoundError(f"Variant {variant_id} not found", field="variant_id")

    checked = 0
    drifts: List[StockDrift] = []
    for variant in variants:
        sizes = [dict(entry) for entry in (variant.sizes or [])]
        changed = False
        for entry in sizes:
            checked += 1
            counter = int(entry.get("stock") or 0)
            ledger = totals.get((variant.id, entry["size"]), 0)
            if counter != ledger:
                drifts.append(StockDrift(
                    variant_id=variant.id,
                    size=entry["size"],
                    counter=counter,
                    ledger=ledger,
                    difference=counter - ledger))
                if apply:
                    entry["stock"] = ledger
                    changed = True
        if changed:
            variant.sizes = sizes

    if drifts:
        logger.warning(f"⚠️ {len(drifts)} size counter(s) disagree with the movement log" + (", rewritten" if apply else ""))
    if apply:
        await db.flush()

    return StockRecalculateResponse(checked=checked, drifts=drifts, applied=apply and bool(drifts))
