"""
Integration tests for catalog and customer maintenance.
"""
from decimal import Decimal

import pytest

from stockledger.core.exceptions import ConflictError, NotFoundError
from stockledger.db.transaction import run_atomic
from stockledger.schemas.catalog import ProductCreate, ProductUpdate, SizeEntry, VariantCreate
from stockledger.schemas.order import OrderCreate, OrderItemCreate
from stockledger.schemas.party import CustomerCreate, CustomerUpdate
from stockledger.services.catalog import (
    create_customer, create_product, delete_customer, delete_product, get_customer,
    get_product, get_variant, update_customer, update_product
)
from stockledger.services.orders import create_order
from stockledger.services.purchases import record_purchase


async def new_empty_product(db, name="Silk Dupatta") -> tuple:
    """Product whose single variant starts with no stock, so nothing refers to it yet."""
    product = await run_atomic(db, create_product, ProductCreate(
        name=name,
        hsn_code=5007,
        variants=[VariantCreate(name="Maroon", sizes=[SizeEntry(size="Free", selling_price=Decimal("899"))])],
    ))
    product = await get_product(db, product.id)
    ids = (product.id, product.variants[0].id)
    await db.commit()
    return ids


@pytest.mark.integration
class TestProductMaintenance:

    async def test_update_changes_only_sent_fields(self, db, product_id):
        await run_atomic(db, update_product, product_id, ProductUpdate(name="Cotton Kurta (Men)"))

        product = await get_product(db, product_id)
        await db.commit()
        assert product.name == "Cotton Kurta (Men)"
        assert product.hsn_code == 6211

    async def test_update_missing_product(self, db):
        with pytest.raises(NotFoundError):
            await run_atomic(db, update_product, 999, ProductUpdate(hsn_code=1))

    async def test_delete_unreferenced_product(self, db):
        product_id, variant_id = await new_empty_product(db)

        await run_atomic(db, delete_product, product_id)

        with pytest.raises(NotFoundError):
            await get_product(db, product_id)
        with pytest.raises(NotFoundError):
            await get_variant(db, variant_id)
        await db.commit()

    async def test_delete_refused_with_stock_history(self, db, product_id):
        """Opening stock is a movement, so the product stays."""
        with pytest.raises(ConflictError) as exc_info:
            await run_atomic(db, delete_product, product_id)

        assert "stock movement" in exc_info.value.detail
        assert (await get_product(db, product_id)).name == "Cotton Kurta"
        await db.commit()

    async def test_delete_refused_with_purchase_line(self, db, receipt_policy, purchase_payload):
        receipt_policy("on_receipt")
        product_id, variant_id = await new_empty_product(db)
        await run_atomic(db, record_purchase, purchase_payload("SUP-2001", [(variant_id, "Free", 4, 600)]))

        with pytest.raises(ConflictError) as exc_info:
            await run_atomic(db, delete_product, product_id)

        assert "purchase line" in exc_info.value.detail
        assert "stock movement" not in exc_info.value.detail


@pytest.mark.integration
class TestCustomerMaintenance:

    async def test_detail_includes_order_history(self, db, customer_id, variant_id):
        order = await run_atomic(db, create_order, OrderCreate(
            customer_id=customer_id,
            items=[
                OrderItemCreate(variant_id=variant_id, size="S", quantity=2, rate=Decimal("250")),
                OrderItemCreate(variant_id=variant_id, size="M", quantity=1, rate=Decimal("250")),
            ],
        ))

        detail = await get_customer(db, customer_id)
        await db.commit()

        assert detail.name == "Sharma Garments"
        assert [o.invoice_no for o in detail.orders] == [order.invoice_no]
        assert detail.orders[0].item_count == 2
        assert detail.orders[0].total_quantity == 3
        assert detail.orders[0].total_amount == Decimal("750.00")

    async def test_partial_update(self, db, customer_id):
        await run_atomic(db, update_customer, customer_id, CustomerUpdate(phone="9000000001"))

        detail = await get_customer(db, customer_id)
        await db.commit()
        assert detail.phone == "9000000001"
        assert detail.name == "Sharma Garments"
        assert detail.gstin == "29AAFCS5678B1Z2"

    async def test_delete_refused_with_orders(self, db, customer_id, variant_id):
        await run_atomic(db, create_order, OrderCreate(
            customer_id=customer_id,
            items=[OrderItemCreate(variant_id=variant_id, size="L", quantity=1, rate=Decimal("250"))],
        ))

        with pytest.raises(ConflictError):
            await run_atomic(db, delete_customer, customer_id)

        assert (await get_customer(db, customer_id)).orders
        await db.commit()

    async def test_delete_customer_without_orders(self, db):
        customer = await run_atomic(db, create_customer, CustomerCreate(name="Walk-in"))
        customer_id = customer.id

        await run_atomic(db, delete_customer, customer_id)

        with pytest.raises(NotFoundError):
            await get_customer(db, customer_id)
        await db.commit()
