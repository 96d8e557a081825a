"""
Order engine

Placing an order takes its quantities out of the per-size counters.
Editing reconciles the counters by the net difference per (variant, size);
deleting puts everything back. Approved orders are locked.
"""

from typing import Dict, Iterable, List, Optional, Tuple
from datetime import datetime
from decimal import Decimal
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stockledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from stockledger.core.logging_config import get_logger
from stockledger.models.order import Order
from stockledger.models.order_item import OrderItem
from stockledger.models.product import Variant
from stockledger.models.status import OrderStatus, ORDER_GUARDED_SOURCE, can_transition_order
from stockledger.models.status_change import StatusChange
from stockledger.schemas.order import (
    OrderCreate, OrderUpdate, OrderItemCreate, OrderResponse, OrderItemResponse,
    OrderStatusAck, CustomerSnapshot
)
from stockledger.schemas.pricing import BillTotals, Discount, TaxConfig
from stockledger.services import stock_ledger
from stockledger.services.catalog import require_customer, variant_snapshot, product_snapshot
from stockledger.services.pricing import LineInput, compute_bill, line_total, resolve_line_discount, round_money

logger = get_logger(__name__)

StockKey = Tuple[int, str]


async def generate_invoice_no(db: AsyncSession) -> str:
    """INV-YYYYMMDD-NNNN, numbered per day; the sequence widens past 9999"""
    prefix = f"INV-{datetime.now().strftime('%Y%m%d')}-"
    # longest first so -10000 sorts above -9999
    result = await db.execute(
        select(Order.invoice_no)
        .where(Order.invoice_no.like(f"{prefix}%"))
        .order_by(func.length(Order.invoice_no).desc(), Order.invoice_no.desc())
        .limit(1)
    )
    max_no = result.scalar()

    seq = 1
    if max_no:
        tail = max_no[len(prefix):]
        if tail.isdigit():
            seq = int(tail) + 1

    return f"{prefix}{seq:04d}"


def base_order_query():
    """Order with customer and lines -> variant -> product"""
    return select(Order).options(
        selectinload(Order.customer),
        selectinload(Order.items).selectinload(OrderItem.variant).selectinload(Variant.product),
    )


async def get_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        base_order_query()
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError(f"Order {order_id} not found", field="order_id")
    return order


async def _lock_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError(f"Order {order_id} not found", field="order_id")
    return order


def _quantities(items: Iterable) -> Dict[StockKey, int]:
    """Total quantity per (variant, size)"""
    totals: Dict[StockKey, int] = {}
    for item in items:
        key = (item.variant_id, item.size)
        totals[key] = totals.get(key, 0) + item.quantity
    return totals


async def _check_lines(db: AsyncSession, items: List[OrderItemCreate]) -> None:
    for item_in in items:
        variant = await stock_ledger.load_variant(db, item_in.variant_id, for_update=False)
        stock_ledger.require_size(variant, item_in.size)


def _build_items(items: List[OrderItemCreate]) -> Tuple[List[OrderItem], List[LineInput]]:
    rows = []
    lines = []
    for index, item_in in enumerate(items):
        discount = resolve_line_discount(item_in.quantity, item_in.rate, item_in.discount)
        total = line_total(item_in.quantity, item_in.rate, discount)
        if total < 0:
            raise ValidationError("Line discount exceeds the line amount", field=f"items[{index}].discount")
        rows.append(OrderItem(
            variant_id=item_in.variant_id,
            size=item_in.size,
            quantity=item_in.quantity,
            rate=round_money(item_in.rate),
            discount_type=item_in.discount.type,
            discount_value=item_in.discount.value,
            discount=round_money(discount),
            total=round_money(total)))
        lines.append(LineInput(item_in.quantity, item_in.rate, discount))
    return rows, lines


def _apply_totals(order: Order, totals: BillTotals, bill_discount: Discount, tax: TaxConfig) -> None:
    order.discount_type = bill_discount.type
    order.discount_value = bill_discount.value
    order.discount_amount = totals.discount
    order.tax_type = tax.type
    order.igst_rate = tax.igst_rate
    order.cgst_rate = tax.cgst_rate
    order.sgst_rate = tax.sgst_rate
    order.igst = totals.igst
    order.cgst = totals.cgst
    order.sgst = totals.sgst
    order.subtotal = totals.subtotal
    order.taxable_amount = totals.taxable_amount
    order.total_amount = totals.total


def _log_status(db: AsyncSession, order: Order, from_status: Optional[str], to_status: str,
                applied: bool = True, note: str = None) -> None:
    db.add(StatusChange(
        document_type="order",
        document_id=order.id,
        from_status=from_status,
        to_status=to_status,
        applied=applied,
        note=note))


async def create_order(db: AsyncSession, order_in: OrderCreate) -> Order:
    """Create a pending order and take its quantities out of stock"""
    await require_customer(db, order_in.customer_id)
    await _check_lines(db, order_in.items)

    rows, lines = _build_items(order_in.items)
    totals = compute_bill(lines, order_in.bill_discount, order_in.tax)

    order = Order(
        invoice_no=await generate_invoice_no(db),
        customer_id=order_in.customer_id,
        order_date=order_in.order_date or datetime.utcnow(),
        status=OrderStatus.PENDING.value,
        notes=order_in.notes,
        remarks=order_in.remarks)
    _apply_totals(order, totals, order_in.bill_discount, order_in.tax)
    for row in rows:
        order.items.append(row)
    db.add(order)
    await db.flush()

    for (variant_id, size), quantity in sorted(_quantities(rows).items()):
        await stock_ledger.issue_stock(
            db, variant_id, size, quantity, order_id=order.id, reason=f"Order {order.invoice_no}")

    _log_status(db, order, None, order.status, note="created")
    await db.flush()

    logger.info(f"✅ Order {order.invoice_no} created: {len(rows)} line(s), total {totals.total}")
    return order


async def _reconcile_stock(db: AsyncSession, order: Order,
                           old: Dict[StockKey, int], new: Dict[StockKey, int]) -> None:
    """Move only the net difference per (variant, size); returns go first"""
    deltas = {key: new.get(key, 0) - old.get(key, 0) for key in set(old) | set(new)}
    reason = f"Order {order.invoice_no} edited"

    for (variant_id, size), delta in sorted(deltas.items()):
        if delta < 0:
            await stock_ledger.restock(db, variant_id, size, -delta, order_id=order.id, reason=reason)
    for (variant_id, size), delta in sorted(deltas.items()):
        if delta > 0:
            await stock_ledger.issue_stock(db, variant_id, size, delta, order_id=order.id, reason=reason)


async def update_order(db: AsyncSession, order_id: int, order_in: OrderUpdate) -> Order:
    """
    Full replace: status, notes, remarks, bill discount, tax and, when
    given, the whole line collection (lines left out are dropped)
    """
    order = await _lock_order(db, order_id)
    if order.is_locked:
        raise ConflictError(f"Order {order.invoice_no} is approved and can no longer be edited", field="status")

    if order_in.status and order_in.status.value != order.status:
        if not can_transition_order(order.status, order_in.status):
            raise ConflictError(
                f"Order {order.invoice_no} cannot move from {order.status} to {order_in.status.value}",
                field="status")
        _log_status(db, order, order.status, order_in.status.value, note="edit")
        order.status = order_in.status.value

    order.notes = order_in.notes
    order.remarks = order_in.remarks

    if order_in.items is not None:
        if not order_in.items:
            raise ValidationError("An order needs at least one line", field="items")
        await _check_lines(db, order_in.items)
        rows, lines = _build_items(order_in.items)
        old_quantities = _quantities(order.items)

        order.items.clear()
        await db.flush()
        for row in rows:
            order.items.append(row)
        await db.flush()

        await _reconcile_stock(db, order, old_quantities, _quantities(rows))
    else:
        lines = [LineInput(item.quantity, item.rate, item.discount) for item in order.items]

    totals = compute_bill(lines, order_in.bill_discount, order_in.tax)
    _apply_totals(order, totals, order_in.bill_discount, order_in.tax)
    order.updated_at = datetime.utcnow()
    await db.flush()

    logger.info(f"✏️ Order {order.invoice_no} updated: {len(order.items)} line(s), total {totals.total}")
    return order


async def transition_order_status(db: AsyncSession, order_id: int,
                                  current_status: OrderStatus, new_status: OrderStatus) -> OrderStatusAck:
    """
    Move an order out of review

    Acts only when both the stored status and the caller's view of it are
    review and the target is allowed; anything else is recorded and ignored.
    """
    order = await _lock_order(db, order_id)
    stored = order.status
    applied = (
        current_status == ORDER_GUARDED_SOURCE
        and stored == ORDER_GUARDED_SOURCE.value
        and can_transition_order(stored, new_status)
    )

    if applied:
        order.status = new_status.value
        order.updated_at = datetime.utcnow()
        message = f"Status changed from {stored} to {new_status.value}"
        logger.info(f"🔄 Order {order.invoice_no}: {stored} -> {new_status.value}")
    else:
        message = (
            f"Transition {current_status.value} -> {new_status.value} ignored, "
            f"order is {stored}"
        )
        logger.warning(f"Order {order.invoice_no}: {message}")

    _log_status(db, order, stored, new_status.value, applied=applied,
                note=None if applied else f"caller saw {current_status.value}")
    await db.flush()

    return OrderStatusAck(id=order.id, applied=applied, status=order.status, message=message)


async def delete_order(db: AsyncSession, order_id: int) -> None:
    """Put the order's stock back and delete it"""
    order = await _lock_order(db, order_id)
    if order.is_locked:
        raise ConflictError(f"Order {order.invoice_no} is approved and cannot be deleted", field="status")

    reason = f"Order {order.invoice_no} deleted"
    for (variant_id, size), quantity in sorted(_quantities(order.items).items()):
        await stock_ledger.restock(db, variant_id, size, quantity, order_id=order.id, reason=reason)

    _log_status(db, order, order.status, "deleted")
    await db.delete(order)
    await db.flush()

    logger.info(f"🗑️ Order {order.invoice_no} deleted, stock restored")


async def list_orders(
    db: AsyncSession,
    customer_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20) -> Tuple[List[Order], int]:
    conditions = []
    if customer_id:
        conditions.append(Order.customer_id == customer_id)
    if status:
        conditions.append(Order.status == status)
    if start_date:
        conditions.append(Order.order_date >= start_date)
    if end_date:
        conditions.append(Order.order_date <= end_date)
    if search:
        conditions.append(Order.invoice_no.contains(search))

    query = base_order_query()
    count_query = select(func.count(Order.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(Order.order_date.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


def build_order_response(order: Order) -> OrderResponse:
    customer = order.customer
    return OrderResponse(
        id=order.id,
        invoice_no=order.invoice_no,
        customer_id=order.customer_id,
        customer=CustomerSnapshot(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            address=customer.address,
            gstin=customer.gstin,
            state_name=customer.state_name,
            state_code=customer.state_code or 0) if customer else None,
        order_date=order.order_date,
        status=order.status,
        bill_discount=Discount(type=order.discount_type or "none", value=order.discount_value or Decimal("0")),
        tax=TaxConfig(
            type=order.tax_type or "none",
            igst_rate=order.igst_rate or Decimal("0"),
            cgst_rate=order.cgst_rate or Decimal("0"),
            sgst_rate=order.sgst_rate or Decimal("0")),
        subtotal=order.subtotal,
        discount_amount=order.discount_amount or Decimal("0"),
        taxable_amount=order.taxable_amount,
        igst=order.igst or Decimal("0"),
        cgst=order.cgst or Decimal("0"),
        sgst=order.sgst or Decimal("0"),
        total_amount=order.total_amount,
        notes=order.notes,
        remarks=order.remarks,
        items=[
            OrderItemResponse(
                id=item.id,
                variant_id=item.variant_id,
                size=item.size,
                quantity=item.quantity,
                rate=item.rate,
                discount_type=item.discount_type or "none",
                discount_value=item.discount_value or Decimal("0"),
                discount=item.discount,
                total=item.total,
                variant=variant_snapshot(item.variant, item.size),
                product=product_snapshot(item.variant))
            for item in order.items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at)
