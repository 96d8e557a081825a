"""
Pytest configuration and shared fixtures for the stock ledger test suite.

Every test gets its own SQLite file. Fixtures hand out ids rather than ORM
objects: a rolled-back session expires its objects, and touching an expired
object outside the async loader fails.
"""
import os
import tempfile
from decimal import Decimal
from pathlib import Path

# the application reads these at import time
_TEST_HOME = tempfile.mkdtemp(prefix="stockledger_test_")
os.environ.setdefault("SQLITE_DATABASE_URI", f"sqlite:///{Path(_TEST_HOME) / 'default.db'}")
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("STOCK_AUDIT_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from stockledger.core.config import settings
from stockledger.core.deps import get_db
from stockledger.db.init_db import ensure_tables_exist
from stockledger.db.session import create_engine_for, create_session_factory
from stockledger.db.transaction import run_atomic
from stockledger.schemas.catalog import ProductCreate, SizeEntry, VariantCreate
from stockledger.schemas.party import CustomerCreate, SupplierCreate
from stockledger.schemas.purchase import PurchaseCreate, PurchaseItemCreate
from stockledger.services.catalog import (
    create_customer, create_product, create_supplier, get_variant, list_variants
)

# opening stock of the seeded variant
OPENING_STOCK = {"S": 10, "M": 5, "L": 3}


@pytest_asyncio.fixture
async def engine(tmp_path: Path):
    """Fresh database file per test."""
    engine = create_engine_for(f"sqlite:///{tmp_path / 'ledger.db'}")
    await ensure_tables_exist(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def receipt_policy(monkeypatch):
    """Switch STOCK_RECEIPT_POLICY for one test."""
    def _set(policy: str):
        monkeypatch.setattr(settings, "STOCK_RECEIPT_POLICY", policy)
    return _set


@pytest_asyncio.fixture
async def supplier_id(db) -> int:
    supplier = await run_atomic(db, create_supplier, SupplierCreate(
        name="Acme Textiles",
        division="Ethnic wear",
        gstin="27AAACA1234A1Z5",
        pan="AAACA1234A",
        state_name="Maharashtra",
        state_code=27,
    ))
    return supplier.id


@pytest_asyncio.fixture
async def customer_id(db) -> int:
    customer = await run_atomic(db, create_customer, CustomerCreate(
        name="Sharma Garments",
        phone="9820012345",
        gstin="29AAFCS5678B1Z2",
        state_name="Karnataka",
        state_code=29,
    ))
    return customer.id


@pytest_asyncio.fixture
async def product_id(db, supplier_id) -> int:
    product = await run_atomic(db, create_product, ProductCreate(
        name="Cotton Kurta",
        hsn_code=6211,
        variants=[
            VariantCreate(
                name="Indigo Block Print",
                supplier_id=supplier_id,
                barcode="KRT-IND-001",
                sizes=[
                    SizeEntry(size=label, stock=stock, buying_price=Decimal("180"), selling_price=Decimal("250"))
                    for label, stock in OPENING_STOCK.items()
                ],
            ),
            VariantCreate(
                name="Plain White",
                sizes=[SizeEntry(size="M", stock=2, buying_price=Decimal("150"), selling_price=Decimal("210"))],
            ),
        ],
    ))
    return product.id


@pytest_asyncio.fixture
async def variant_id(db, product_id) -> int:
    """The Indigo variant with sizes S/M/L."""
    variants = await list_variants(db, product_id)
    await db.commit()
    return variants[0].id


@pytest_asyncio.fixture
async def other_variant_id(db, product_id) -> int:
    variants = await list_variants(db, product_id)
    await db.commit()
    return variants[1].id


@pytest.fixture
def read_stock(db):
    """Current counter of one size, read from the store."""
    async def _read(variant_id: int, size: str) -> int:
        variant = await get_variant(db, variant_id)
        stock = variant.stock_of(size)
        # end the read transaction so other connections can write
        await db.commit()
        return stock
    return _read


@pytest.fixture
def purchase_payload(supplier_id):
    """Build a PurchaseCreate for the seeded supplier."""
    def _build(invoice_no: str, lines, **kwargs) -> PurchaseCreate:
        return PurchaseCreate(
            supplier_id=supplier_id,
            invoice_no=invoice_no,
            items=[
                PurchaseItemCreate(variant_id=v, size=size, quantity=qty, unit_price=Decimal(str(price)))
                for v, size, qty, price in lines
            ],
            **kwargs,
        )
    return _build


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the per-test database."""
    from stockledger.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
