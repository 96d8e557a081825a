"""
Purchase engine

recordPurchase / approvePurchase plus cancel and generic status changes.
Money is recomputed here from the lines; figures sent by the caller are
only checked against ours. When stock is added depends on
STOCK_RECEIPT_POLICY (see DESIGN.md).
"""

from typing import List, Optional
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stockledger.core.config import settings
from stockledger.core.exceptions import ConflictError, NotFoundError, PurchaseAlreadyReceived, ValidationError
from stockledger.core.logging_config import get_logger
from stockledger.models.product import Variant
from stockledger.models.purchase_order import PurchaseOrder, PurchaseItem
from stockledger.models.status import PurchaseStatus, can_transition_purchase
from stockledger.models.status_change import StatusChange
from stockledger.schemas.pricing import BillTotals
from stockledger.schemas.purchase import (
    PurchaseCreate, PurchaseResponse, PurchaseItemResponse, SupplierSnapshot, ItemsSummary
)
from stockledger.services import stock_ledger
from stockledger.services.catalog import require_supplier, variant_snapshot, product_snapshot
from stockledger.services.pricing import LineInput, amounts_agree, compute_bill, line_total, round_money

logger = get_logger(__name__)

# caller field -> computed field
SUPPLIED_TOTALS = {
    "subtotal": "subtotal",
    "discount": "discount",
    "taxable_amount": "taxable_amount",
    "cgst": "cgst",
    "sgst": "sgst",
    "igst": "igst",
    "total_amount": "total",
}


def base_purchase_query():
    """Purchase with supplier and lines -> variant -> product"""
    return select(PurchaseOrder).options(
        selectinload(PurchaseOrder.supplier),
        selectinload(PurchaseOrder.items).selectinload(PurchaseItem.variant).selectinload(Variant.product),
    )


async def get_purchase(db: AsyncSession, purchase_id: int) -> PurchaseOrder:
    result = await db.execute(
        base_purchase_query()
        .where(PurchaseOrder.id == purchase_id)
        .execution_options(populate_existing=True)
    )
    purchase = result.scalar_one_or_none()
    if not purchase:
        raise NotFoundError(f"Purchase order {purchase_id} not found", field="purchase_id")
    return purchase


async def _lock_purchase(db: AsyncSession, purchase_id: int) -> PurchaseOrder:
    result = await db.execute(
        select(PurchaseOrder)
        .options(selectinload(PurchaseOrder.items))
        .where(PurchaseOrder.id == purchase_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    purchase = result.scalar_one_or_none()
    if not purchase:
        raise NotFoundError(f"Purchase order {purchase_id} not found", field="purchase_id")
    return purchase


def _check_supplied_totals(purchase_in: PurchaseCreate, totals: BillTotals) -> None:
    for field, computed in SUPPLIED_TOTALS.items():
        supplied = getattr(purchase_in, field)
        expected = getattr(totals, computed)
        if not amounts_agree(expected, supplied):
            raise ValidationError(f"{field} {supplied} does not match computed {expected}", field=field)


def _log_status(db: AsyncSession, purchase: PurchaseOrder, from_status: Optional[str], to_status: str,
                applied: bool = True, note: str = None) -> None:
    db.add(StatusChange(
        document_type="purchase",
        document_id=purchase.id,
        from_status=from_status,
        to_status=to_status,
        applied=applied,
        note=note))


async def _verify_lines_exist(db: AsyncSession, items) -> None:
    """Every (variant, size) a line points at must exist"""
    for item in items:
        variant = await stock_ledger.load_variant(db, item.variant_id, for_update=False)
        stock_ledger.require_size(variant, item.size)


async def _apply_receipt(db: AsyncSession, purchase: PurchaseOrder, items: List[PurchaseItem]) -> None:
    """Add every line to its size counter; never runs twice for one purchase"""
    if purchase.stock_applied:
        return
    for item in items:
        await stock_ledger.receive_stock(
            db, item.variant_id, item.size, item.quantity,
            purchase_id=purchase.id, reason=f"Purchase {purchase.invoice_no}")
    purchase.stock_applied = True


async def _reverse_receipt(db: AsyncSession, purchase: PurchaseOrder, items: List[PurchaseItem]) -> None:
    if not purchase.stock_applied:
        return
    for item in items:
        await stock_ledger.reverse_receipt(
            db, item.variant_id, item.size, item.quantity,
            purchase_id=purchase.id, reason=f"Purchase {purchase.invoice_no} cancelled")
    purchase.stock_applied = False


async def record_purchase(db: AsyncSession, purchase_in: PurchaseCreate) -> PurchaseOrder:
    """
    Create a purchase order with its lines

    Every referenced variant and size must exist; one missing size aborts
    the whole unit, stock included.
    """
    await require_supplier(db, purchase_in.supplier_id)

    existing = await db.execute(
        select(PurchaseOrder.id).where(PurchaseOrder.invoice_no == purchase_in.invoice_no)
    )
    if existing.scalar_one_or_none():
        raise ConflictError(f"Invoice number {purchase_in.invoice_no} already exists", field="invoice_no")

    lines = []
    for index, item_in in enumerate(purchase_in.items):
        total = line_total(item_in.quantity, item_in.unit_price, item_in.discount)
        if total < 0:
            raise ValidationError("Line discount exceeds the line amount", field=f"items[{index}].discount")
        if not amounts_agree(total, item_in.total_price):
            raise ValidationError(
                f"total_price {item_in.total_price} does not match computed {round_money(total)}",
                field=f"items[{index}].total_price")
        lines.append(LineInput(item_in.quantity, item_in.unit_price, item_in.discount))

    totals = compute_bill(lines, purchase_in.bill_discount, purchase_in.tax)
    _check_supplied_totals(purchase_in, totals)
    await _verify_lines_exist(db, purchase_in.items)

    status = purchase_in.status.value
    purchase = PurchaseOrder(
        invoice_no=purchase_in.invoice_no,
        purchase_date=purchase_in.purchase_date or datetime.utcnow(),
        supplier_id=purchase_in.supplier_id,
        status=status,
        notes=purchase_in.notes,
        discount_type=purchase_in.bill_discount.type,
        discount_value=purchase_in.bill_discount.value,
        subtotal=totals.subtotal,
        discount=totals.discount,
        taxable_amount=totals.taxable_amount,
        tax_type=purchase_in.tax.type,
        cgst=totals.cgst,
        sgst=totals.sgst,
        igst=totals.igst,
        total_amount=totals.total,
        stock_applied=False)
    db.add(purchase)
    await db.flush()

    items = []
    for item_in in purchase_in.items:
        item = PurchaseItem(
            purchase_order_id=purchase.id,
            variant_id=item_in.variant_id,
            size=item_in.size,
            quantity=item_in.quantity,
            unit_price=round_money(item_in.unit_price),
            discount=round_money(item_in.discount),
            total_price=round_money(line_total(item_in.quantity, item_in.unit_price, item_in.discount)))
        db.add(item)
        items.append(item)
    await db.flush()

    received = status == PurchaseStatus.RECEIVED.value
    if received or settings.STOCK_RECEIPT_POLICY == "on_create":
        await _apply_receipt(db, purchase, items)
    if received:
        purchase.received_at = datetime.utcnow()

    _log_status(db, purchase, None, status, note="created")
    await db.flush()

    logger.info(
        f"✅ Purchase {purchase.invoice_no} recorded: {len(items)} line(s), total {totals.total}, "
        f"stock {'applied' if purchase.stock_applied else 'deferred'}"
    )
    return purchase


async def _move_purchase(db: AsyncSession, purchase: PurchaseOrder, target: PurchaseStatus) -> PurchaseOrder:
    current = purchase.status
    if not can_transition_purchase(current, target):
        raise ConflictError(f"Purchase {purchase.invoice_no} cannot move from {current} to {target.value}", field="status")

    items = list(purchase.items)
    if target == PurchaseStatus.RECEIVED:
        await _apply_receipt(db, purchase, items)
        purchase.received_at = datetime.utcnow()
    elif target == PurchaseStatus.CANCELLED:
        await _reverse_receipt(db, purchase, items)

    purchase.status = target.value
    purchase.updated_at = datetime.utcnow()
    _log_status(db, purchase, current, target.value)
    await db.flush()

    logger.info(f"🔄 Purchase {purchase.invoice_no}: {current} -> {target.value}")
    return purchase


async def approve_purchase(db: AsyncSession, purchase_id: int) -> PurchaseOrder:
    """Mark a purchase RECEIVED; adds stock only if it was not added at creation"""
    purchase = await _lock_purchase(db, purchase_id)
    if purchase.status == PurchaseStatus.RECEIVED.value:
        raise PurchaseAlreadyReceived("Purchase order is already received", field="status")
    if purchase.status == PurchaseStatus.CANCELLED.value:
        raise ConflictError("A cancelled purchase order cannot be received", field="status")
    return await _move_purchase(db, purchase, PurchaseStatus.RECEIVED)


async def cancel_purchase(db: AsyncSession, purchase_id: int) -> PurchaseOrder:
    """Cancel a purchase and take back any stock it added"""
    purchase = await _lock_purchase(db, purchase_id)
    if purchase.status == PurchaseStatus.CANCELLED.value:
        raise ConflictError("Purchase order is already cancelled", field="status")
    return await _move_purchase(db, purchase, PurchaseStatus.CANCELLED)


async def change_purchase_status(db: AsyncSession, purchase_id: int, new_status: PurchaseStatus) -> PurchaseOrder:
    if new_status == PurchaseStatus.RECEIVED:
        return await approve_purchase(db, purchase_id)
    if new_status == PurchaseStatus.CANCELLED:
        return await cancel_purchase(db, purchase_id)
    purchase = await _lock_purchase(db, purchase_id)
    return await _move_purchase(db, purchase, new_status)


# ===== Responses =====
def items_summary(purchase: PurchaseOrder) -> ItemsSummary:
    items = purchase.items
    return ItemsSummary(
        total_items=len(items),
        total_quantity=sum(item.quantity for item in items),
        unique_products=len({item.variant.product_id for item in items if item.variant}),
        unique_variants=len({item.variant_id for item in items}))


def build_purchase_response(purchase: PurchaseOrder) -> PurchaseResponse:
    supplier = purchase.supplier
    return PurchaseResponse(
        id=purchase.id,
        invoice_no=purchase.invoice_no,
        purchase_date=purchase.purchase_date,
        status=purchase.status,
        notes=purchase.notes,
        discount_type=purchase.discount_type or "none",
        discount_value=purchase.discount_value or 0,
        subtotal=purchase.subtotal,
        discount=purchase.discount,
        taxable_amount=purchase.taxable_amount,
        tax_type=purchase.tax_type or "none",
        cgst=purchase.cgst or 0,
        sgst=purchase.sgst or 0,
        igst=purchase.igst or 0,
        total_amount=purchase.total_amount,
        stock_applied=purchase.stock_applied,
        received_at=purchase.received_at,
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
        supplier=SupplierSnapshot(
            id=supplier.id,
            name=supplier.name,
            phone=supplier.phone,
            address=supplier.address,
            gstin=supplier.gstin,
            pan=supplier.pan,
            cin=supplier.cin,
            state_name=supplier.state_name,
            state_code=supplier.state_code or 0,
            division=supplier.division) if supplier else None,
        items=[
            PurchaseItemResponse(
                id=item.id,
                variant_id=item.variant_id,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                total_price=item.total_price,
                variant=variant_snapshot(item.variant, item.size),
                product=product_snapshot(item.variant))
            for item in purchase.items
        ],
        items_summary=items_summary(purchase))
