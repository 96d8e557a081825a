"""
Integration tests for the purchase engine against a real SQLite file.
"""
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from stockledger.core.exceptions import (
    ConflictError, InsufficientStockError, NotFoundError, PurchaseAlreadyReceived, ValidationError
)
from stockledger.db.transaction import run_atomic
from stockledger.models.purchase_order import PurchaseOrder
from stockledger.models.status import PurchaseStatus
from stockledger.models.status_change import StatusChange
from stockledger.models.stock_movement import StockMovement
from stockledger.schemas.pricing import Discount, TaxConfig
from stockledger.services.purchases import (
    approve_purchase, build_purchase_response, cancel_purchase, change_purchase_status,
    get_purchase, record_purchase
)
from stockledger.services.stock_ledger import issue_stock


async def count_rows(db, model) -> int:
    count = (await db.execute(select(func.count(model.id)))).scalar()
    await db.commit()
    return count


@pytest.mark.integration
class TestRecordPurchase:

    async def test_increments_only_referenced_sizes(self, db, variant_id, other_variant_id, read_stock, purchase_payload):
        """Each referenced size grows by its quantity; nothing else moves."""
        payload = purchase_payload("SUP-1001", [(variant_id, "S", 4, 180), (variant_id, "L", 2, 180)])

        purchase = await run_atomic(db, record_purchase, payload)

        assert purchase.id
        assert purchase.stock_applied is True
        assert await read_stock(variant_id, "S") == 14
        assert await read_stock(variant_id, "M") == 5
        assert await read_stock(variant_id, "L") == 5
        assert await read_stock(other_variant_id, "M") == 2

    async def test_money_fields_computed_server_side(self, db, variant_id, purchase_payload):
        payload = purchase_payload(
            "SUP-1002",
            [(variant_id, "S", 2, 100), (variant_id, "M", 1, 50)],
            bill_discount=Discount(type="percentage", value=Decimal("10")),
            tax=TaxConfig(type="igst", igst_rate=Decimal("18")),
        )
        payload.items[1].discount = Decimal("5")

        purchase = await run_atomic(db, record_purchase, payload)

        assert purchase.subtotal == Decimal("245.00")
        assert purchase.discount == Decimal("24.50")
        assert purchase.taxable_amount == Decimal("220.50")
        assert purchase.igst == Decimal("39.69")
        assert purchase.total_amount == Decimal("260.19")
        assert purchase.tax_type == "igst"

    async def test_supplied_totals_must_match(self, db, variant_id, read_stock, purchase_payload):
        payload = purchase_payload("SUP-1003", [(variant_id, "S", 2, 100)], total_amount=Decimal("250"))

        with pytest.raises(ValidationError) as exc_info:
            await run_atomic(db, record_purchase, payload)

        assert exc_info.value.field == "total_amount"
        assert await read_stock(variant_id, "S") == 10

    async def test_supplied_totals_accepted_when_equal(self, db, variant_id, purchase_payload):
        payload = purchase_payload(
            "SUP-1004", [(variant_id, "S", 2, 100)], subtotal=Decimal("200"), total_amount=Decimal("200.00"))
        payload.items[0].total_price = Decimal("200")

        purchase = await run_atomic(db, record_purchase, payload)

        assert purchase.total_amount == Decimal("200.00")

    async def test_line_total_mismatch_names_the_line(self, db, variant_id, purchase_payload):
        payload = purchase_payload("SUP-1005", [(variant_id, "S", 2, 100), (variant_id, "M", 1, 100)])
        payload.items[1].total_price = Decimal("90")

        with pytest.raises(ValidationError) as exc_info:
            await run_atomic(db, record_purchase, payload)

        assert exc_info.value.field == "items[1].total_price"

    async def test_missing_size_rolls_back_everything(self, db, variant_id, read_stock, purchase_payload):
        """The valid first line must not survive a missing size on the second."""
        movements_before = await count_rows(db, StockMovement)
        payload = purchase_payload("SUP-1006", [(variant_id, "S", 3, 180), (variant_id, "XXL", 1, 180)])

        with pytest.raises(NotFoundError) as exc_info:
            await run_atomic(db, record_purchase, payload)

        assert exc_info.value.field == "size"
        assert await read_stock(variant_id, "S") == 10
        assert await count_rows(db, PurchaseOrder) == 0
        assert await count_rows(db, StockMovement) == movements_before

    async def test_missing_variant(self, db, variant_id, purchase_payload):
        payload = purchase_payload("SUP-1007", [(variant_id + 999, "S", 1, 180)])

        with pytest.raises(NotFoundError):
            await run_atomic(db, record_purchase, payload)

        assert await count_rows(db, PurchaseOrder) == 0

    async def test_missing_supplier(self, db, variant_id, purchase_payload):
        payload = purchase_payload("SUP-1008", [(variant_id, "S", 1, 180)])
        payload.supplier_id = 4242

        with pytest.raises(NotFoundError) as exc_info:
            await run_atomic(db, record_purchase, payload)

        assert exc_info.value.field == "supplier_id"

    async def test_duplicate_invoice_number(self, db, variant_id, read_stock, purchase_payload):
        await run_atomic(db, record_purchase, purchase_payload("SUP-1009", [(variant_id, "S", 1, 180)]))

        with pytest.raises(ConflictError):
            await run_atomic(db, record_purchase, purchase_payload("SUP-1009", [(variant_id, "S", 5, 180)]))

        assert await read_stock(variant_id, "S") == 11

    async def test_receipt_movements_logged(self, db, variant_id, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-1010", [(variant_id, "M", 6, 180)]))

        result = await db.execute(select(StockMovement).where(StockMovement.purchase_id == purchase.id))
        movements = result.scalars().all()
        await db.commit()

        assert len(movements) == 1
        assert movements[0].movement_type == "purchase_receipt"
        assert (movements[0].stock_before, movements[0].stock_after) == (5, 11)


@pytest.mark.integration
class TestApprovePurchase:

    async def test_approve_twice_conflicts_and_never_double_counts(self, db, variant_id, read_stock, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-2001", [(variant_id, "S", 4, 180)]))
        purchase_id = purchase.id

        approved = await run_atomic(db, approve_purchase, purchase_id)
        assert approved.status == PurchaseStatus.RECEIVED.value
        assert approved.received_at is not None
        assert await read_stock(variant_id, "S") == 14

        with pytest.raises(PurchaseAlreadyReceived):
            await run_atomic(db, approve_purchase, purchase_id)

        purchase = await get_purchase(db, purchase_id)
        await db.commit()
        assert purchase.status == PurchaseStatus.RECEIVED.value
        assert await read_stock(variant_id, "S") == 14

    async def test_receipt_policy_defers_stock_until_received(self, db, variant_id, read_stock, purchase_payload, receipt_policy):
        receipt_policy("on_receipt")

        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-2002", [(variant_id, "M", 3, 180)]))
        purchase_id = purchase.id
        assert purchase.stock_applied is False
        assert await read_stock(variant_id, "M") == 5

        await run_atomic(db, approve_purchase, purchase_id)
        assert await read_stock(variant_id, "M") == 8

        with pytest.raises(PurchaseAlreadyReceived):
            await run_atomic(db, approve_purchase, purchase_id)
        assert await read_stock(variant_id, "M") == 8

    async def test_receipt_policy_still_checks_sizes(self, db, variant_id, purchase_payload, receipt_policy):
        receipt_policy("on_receipt")

        with pytest.raises(NotFoundError):
            await run_atomic(db, record_purchase, purchase_payload("SUP-2003", [(variant_id, "XS", 1, 180)]))

        assert await count_rows(db, PurchaseOrder) == 0

    async def test_created_received_applies_stock_under_either_policy(self, db, variant_id, read_stock, purchase_payload, receipt_policy):
        receipt_policy("on_receipt")

        purchase = await run_atomic(db, record_purchase, purchase_payload(
            "SUP-2004", [(variant_id, "L", 2, 180)], status=PurchaseStatus.RECEIVED))

        assert purchase.stock_applied is True
        assert purchase.received_at is not None
        assert await read_stock(variant_id, "L") == 5

    async def test_approve_missing_purchase(self, db):
        with pytest.raises(NotFoundError):
            await run_atomic(db, approve_purchase, 999)


@pytest.mark.integration
class TestPurchaseStatusChanges:

    async def test_cancel_reverses_applied_stock(self, db, variant_id, read_stock, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-3001", [(variant_id, "S", 4, 180)]))
        purchase_id = purchase.id
        assert await read_stock(variant_id, "S") == 14

        cancelled = await run_atomic(db, cancel_purchase, purchase_id)

        assert cancelled.status == PurchaseStatus.CANCELLED.value
        assert cancelled.stock_applied is False
        assert await read_stock(variant_id, "S") == 10

        with pytest.raises(ConflictError):
            await run_atomic(db, approve_purchase, purchase_id)

    async def test_cancel_refused_when_stock_already_sold(self, db, variant_id, read_stock, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-3002", [(variant_id, "L", 2, 180)]))
        purchase_id = purchase.id
        await run_atomic(db, issue_stock, variant_id, "L", 5)
        assert await read_stock(variant_id, "L") == 0

        with pytest.raises(InsufficientStockError):
            await run_atomic(db, cancel_purchase, purchase_id)

        purchase = await get_purchase(db, purchase_id)
        await db.commit()
        assert purchase.status == PurchaseStatus.PENDING.value

    async def test_received_purchase_cannot_be_cancelled(self, db, variant_id, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-3003", [(variant_id, "S", 1, 180)]))
        purchase_id = purchase.id
        await run_atomic(db, approve_purchase, purchase_id)

        with pytest.raises(ConflictError):
            await run_atomic(db, cancel_purchase, purchase_id)

    async def test_generic_transitions_follow_the_table(self, db, variant_id, read_stock, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload("SUP-3004", [(variant_id, "S", 1, 180)]))
        purchase_id = purchase.id

        ordered = await run_atomic(db, change_purchase_status, purchase_id, PurchaseStatus.ORDERED)
        assert ordered.status == "ORDERED"

        with pytest.raises(ConflictError):
            await run_atomic(db, change_purchase_status, purchase_id, PurchaseStatus.PENDING)

        received = await run_atomic(db, change_purchase_status, purchase_id, PurchaseStatus.RECEIVED)
        assert received.status == "RECEIVED"
        assert await read_stock(variant_id, "S") == 11

        result = await db.execute(
            select(StatusChange.to_status)
            .where(StatusChange.document_type == "purchase", StatusChange.document_id == purchase_id)
            .order_by(StatusChange.id)
        )
        history = list(result.scalars().all())
        await db.commit()
        assert history == ["PENDING", "ORDERED", "RECEIVED"]

    async def test_response_carries_items_summary(self, db, variant_id, other_variant_id, purchase_payload):
        purchase = await run_atomic(db, record_purchase, purchase_payload(
            "SUP-3005", [(variant_id, "S", 2, 180), (variant_id, "M", 3, 180), (other_variant_id, "M", 1, 150)]))

        purchase = await get_purchase(db, purchase.id)
        response = build_purchase_response(purchase)
        await db.commit()

        assert response.items_summary.total_items == 3
        assert response.items_summary.total_quantity == 6
        assert response.items_summary.unique_variants == 2
        assert response.items_summary.unique_products == 1
        assert response.supplier.name == "Acme Textiles"
        assert response.items[0].variant.size == "S"
        assert response.items[0].variant.stock == 12
        assert response.items[0].product.name == "Cotton Kurta"
