"""
Integration tests for the unit-of-work runner and SQLite locking.
"""
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select, func

from stockledger.core.config import settings
from stockledger.core.exceptions import ConflictError, TransactionFailure
from stockledger.db.session import begin_write, create_engine_for, create_session_factory
from stockledger.db.transaction import run_atomic
from stockledger.models.product import Product
from stockledger.models.purchase_order import PurchaseOrder
from stockledger.schemas.catalog import ProductCreate, SizeEntry, VariantCreate
from stockledger.services.catalog import create_product, get_variant
from stockledger.services.purchases import record_purchase


@pytest_asyncio.fixture
async def impatient_factory(tmp_path, engine, monkeypatch):
    """Second engine on the same file that gives up on a lock after 0.2s."""
    monkeypatch.setattr(settings, "DB_BUSY_TIMEOUT", 0.2)
    created = []

    def _build():
        other = create_engine_for(f"sqlite:///{tmp_path / 'ledger.db'}")
        created.append(other)
        return create_session_factory(other)

    yield _build
    for other in created:
        await other.dispose()


@pytest.mark.integration
class TestLockHandling:

    async def test_lock_timeout_is_reported_and_nothing_applied(
            self, db, session_factory, impatient_factory, variant_id, read_stock, purchase_payload):
        payload = purchase_payload("SUP-LOCKED", [(variant_id, "S", 5, 180)])

        async with session_factory() as holder:
            await begin_write(holder)
            async with impatient_factory()() as session:
                with pytest.raises(TransactionFailure) as exc_info:
                    await run_atomic(session, record_purchase, payload)
            await holder.rollback()

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == TransactionFailure().detail
        assert await read_stock(variant_id, "S") == 10
        count = (await db.execute(
            select(func.count(PurchaseOrder.id)).where(PurchaseOrder.invoice_no == "SUP-LOCKED")
        )).scalar()
        await db.commit()
        assert count == 0

    async def test_reads_proceed_while_a_writer_holds_the_lock(
            self, session_factory, impatient_factory, variant_id):
        async with session_factory() as holder:
            await begin_write(holder)
            async with impatient_factory()() as reader:
                variant = await get_variant(reader, variant_id)
                stock = variant.stock_of("S")
                await reader.commit()
            await holder.rollback()

        assert stock == 10

    async def test_write_after_lock_released_succeeds(
            self, session_factory, impatient_factory, variant_id, read_stock, purchase_payload):
        async with session_factory() as holder:
            await begin_write(holder)
            await holder.rollback()

        async with impatient_factory()() as session:
            await run_atomic(session, record_purchase, purchase_payload("SUP-AFTER", [(variant_id, "S", 5, 180)]))

        assert await read_stock(variant_id, "S") == 15


@pytest.mark.integration
class TestIntegrityMapping:

    async def test_duplicate_barcode_in_one_payload_is_a_conflict(self, db):
        payload = ProductCreate(
            name="Linen Shirt",
            variants=[
                VariantCreate(name="Sky", barcode="LIN-001",
                              sizes=[SizeEntry(size="M", stock=1, buying_price=Decimal("300"))]),
                VariantCreate(name="Sand", barcode="LIN-001"),
            ],
        )

        with pytest.raises(ConflictError) as exc_info:
            await run_atomic(db, create_product, payload)

        assert exc_info.value.status_code == 409
        count = (await db.execute(select(func.count(Product.id)))).scalar()
        await db.commit()
        assert count == 0
