"""
Unit tests for request schemas.
"""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from stockledger.models.product import size_entry
from stockledger.models.status import OrderStatus
from stockledger.schemas.catalog import SizeEntry, VariantCreate
from stockledger.schemas.order import OrderItemCreate, OrderStatusTransition, split_variant_size_key
from stockledger.schemas.purchase import PurchaseCreate, PurchaseItemCreate


@pytest.mark.unit
class TestVariantSizeKey:

    def test_split_key(self):
        assert split_variant_size_key("12-M") == (12, "M")

    def test_size_label_may_contain_dash(self):
        assert split_variant_size_key("7-28-30") == (7, "28-30")

    @pytest.mark.parametrize("key", ["M", "abc-M", "12-", "-M"])
    def test_invalid_keys(self, key):
        with pytest.raises(ValueError):
            split_variant_size_key(key)

    def test_order_line_from_key_and_price_alias(self):
        line = OrderItemCreate(id="3-XL", quantity=2, price=Decimal("499"))

        assert line.variant_id == 3
        assert line.size == "XL"
        assert line.rate == Decimal("499")
        assert line.discount.type == "none"

    def test_order_line_needs_variant_and_size(self):
        with pytest.raises(ValidationError):
            OrderItemCreate(quantity=1, rate=Decimal("10"))

    @pytest.mark.parametrize("key", ["new_status", "newStatus"])
    def test_status_transition_accepts_both_keys(self, key):
        transition = OrderStatusTransition.model_validate({"status": "review", key: "approved"})

        assert transition.status == OrderStatus.REVIEW
        assert transition.new_status == OrderStatus.APPROVED


@pytest.mark.unit
class TestSizeEntries:

    def test_stored_shape(self):
        assert size_entry("M", 4, Decimal("180"), "250.50") == {
            "size": "M",
            "stock": 4,
            "buyingPrice": 180.0,
            "sellingPrice": 250.5,
        }

    def test_size_entry_reads_stored_keys(self):
        entry = SizeEntry.model_validate({"size": "L", "stock": 3, "buyingPrice": 180.0, "sellingPrice": 250.0})

        assert entry.buying_price == Decimal("180.0")
        assert entry.model_dump(by_alias=True)["sellingPrice"] == Decimal("250.0")

    def test_duplicate_size_labels_rejected(self):
        with pytest.raises(ValidationError):
            VariantCreate(name="Dup", sizes=[SizeEntry(size="M"), SizeEntry(size="M")])

    def test_negative_opening_stock_rejected(self):
        with pytest.raises(ValidationError):
            VariantCreate(name="Neg", sizes=[SizeEntry(size="M", stock=-1)])


@pytest.mark.unit
class TestPurchasePayload:

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            PurchaseItemCreate(variant_id=1, size="M", quantity=0, unit_price=Decimal("10"))

    def test_items_required(self):
        with pytest.raises(ValidationError):
            PurchaseCreate(supplier_id=1, invoice_no="INV-1", items=[])

    def test_cannot_record_cancelled(self):
        with pytest.raises(ValidationError):
            PurchaseCreate(
                supplier_id=1,
                invoice_no="INV-1",
                status="CANCELLED",
                items=[PurchaseItemCreate(variant_id=1, size="M", quantity=1, unit_price=Decimal("10"))],
            )
