"""
Catalog and party directory entry

Products are entered together with their variants and size entries.
Opening stock goes through the movement log like any other change.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stockledger.core.exceptions import ConflictError, NotFoundError
from stockledger.core.logging_config import get_logger
from stockledger.models.order import Order
from stockledger.models.order_item import OrderItem
from stockledger.models.party import Supplier, Customer
from stockledger.models.product import Product, Variant, size_entry
from stockledger.models.purchase_order import PurchaseItem
from stockledger.models.stock_movement import StockMovement
from stockledger.schemas.catalog import (
    ProductCreate, ProductResponse, ProductUpdate, SizeEntry, VariantAdd, VariantCreate, VariantResponse
)
from stockledger.schemas.party import (
    SupplierCreate, CustomerCreate, CustomerUpdate, CustomerDetailResponse, CustomerOrderSummary
)
from stockledger.schemas.purchase import ProductSnapshot, VariantSnapshot
from stockledger.services.stock_ledger import record_opening_stock

logger = get_logger(__name__)

DEFAULT_BARCODE_TYPE = "CODE128"


# ===== Lookups shared by the engines =====
async def require_supplier(db: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError(f"Supplier {supplier_id} not found", field="supplier_id")
    return supplier


async def require_customer(db: AsyncSession, customer_id: int) -> Customer:
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found", field="customer_id")
    return customer


# ===== Responses =====
def build_variant_response(variant: Variant, product: Optional[Product] = None) -> VariantResponse:
    product = product or variant.product
    return VariantResponse(
        id=variant.id,
        product_id=variant.product_id,
        product_name=product.name if product else "",
        hsn_code=product.hsn_code if product else 0,
        name=variant.name,
        supplier_id=variant.supplier_id,
        barcode=variant.barcode,
        barcode_type=variant.barcode_type,
        sizes=[SizeEntry.model_validate(entry) for entry in (variant.sizes or [])],
        total_stock=variant.total_stock,
        created_at=variant.created_at)


def variant_snapshot(variant: Optional[Variant], size: str) -> Optional[VariantSnapshot]:
    """Variant as a document line sees it - one size, with its current counter and prices"""
    if variant is None:
        return None
    entry = variant.find_size(size) or {}
    return VariantSnapshot(
        id=variant.id,
        name=variant.name,
        size=size,
        stock=entry.get("stock"),
        buying_price=entry.get("buyingPrice"),
        selling_price=entry.get("sellingPrice"))


def product_snapshot(variant: Optional[Variant]) -> Optional[ProductSnapshot]:
    if variant is None or variant.product is None:
        return None
    return ProductSnapshot(id=variant.product.id, name=variant.product.name, hsn_code=variant.product.hsn_code)


def build_product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        hsn_code=product.hsn_code,
        variants=[build_variant_response(v, product) for v in product.variants],
        created_at=product.created_at)


# ===== Products / variants =====
async def _check_variant_refs(db: AsyncSession, variant_in: VariantCreate) -> None:
    if variant_in.supplier_id:
        await require_supplier(db, variant_in.supplier_id)
    if variant_in.barcode:
        result = await db.execute(select(Variant.id).where(Variant.barcode == variant_in.barcode))
        if result.scalar_one_or_none():
            raise ConflictError(f"Barcode {variant_in.barcode} is already in use", field="barcode")


def _new_variant(variant_in: VariantCreate) -> Variant:
    return Variant(
        name=variant_in.name,
        supplier_id=variant_in.supplier_id,
        barcode=variant_in.barcode,
        barcode_type=DEFAULT_BARCODE_TYPE if variant_in.barcode else None,
        sizes=[
            size_entry(s.size, s.stock, s.buying_price, s.selling_price)
            for s in variant_in.sizes
        ])


async def get_product(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.variants))
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError(f"Product {product_id} not found", field="product_id")
    return product


async def create_product(db: AsyncSession, product_in: ProductCreate) -> Product:
    """Product with its variants; non-zero initial stock is logged as opening movements"""
    for variant_in in product_in.variants:
        await _check_variant_refs(db, variant_in)

    product = Product(name=product_in.name, hsn_code=product_in.hsn_code)
    for variant_in in product_in.variants:
        product.variants.append(_new_variant(variant_in))
    db.add(product)
    await db.flush()

    for variant in product.variants:
        record_opening_stock(db, variant)
    await db.flush()

    logger.info(f"✅ Product created: {product.name} with {len(product.variants)} variant(s)")
    return product


async def add_variant(db: AsyncSession, variant_in: VariantAdd) -> Variant:
    product = await db.get(Product, variant_in.product_id)
    if not product:
        raise NotFoundError(f"Product {variant_in.product_id} not found", field="product_id")
    await _check_variant_refs(db, variant_in)

    variant = _new_variant(variant_in)
    variant.product_id = product.id
    db.add(variant)
    await db.flush()
    record_opening_stock(db, variant)
    await db.flush()

    logger.info(f"✅ Variant added to product {product.id}: {variant.name}")
    return variant


async def get_variant(db: AsyncSession, variant_id: int) -> Variant:
    result = await db.execute(
        select(Variant)
        .options(selectinload(Variant.product))
        .where(Variant.id == variant_id)
        .execution_options(populate_existing=True)
    )
    variant = result.scalar_one_or_none()
    if not variant:
        raise NotFoundError(f"Variant {variant_id} not found", field="variant_id")
    return variant


async def list_variants(db: AsyncSession, product_id: int) -> List[Variant]:
    product = await get_product(db, product_id)
    return list(product.variants)


async def list_products(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None) -> Tuple[List[Product], int]:
    query = select(Product).options(selectinload(Product.variants))
    count_query = select(func.count(Product.id))
    if search:
        query = query.where(Product.name.contains(search))
        count_query = count_query.where(Product.name.contains(search))

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(Product.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def update_product(db: AsyncSession, product_id: int, product_in: ProductUpdate) -> Product:
    product = await get_product(db, product_id)
    for field, value in product_in.model_dump(exclude_unset=True).items():
        setattr(product, field, value)
    await db.flush()
    logger.info(f"✏️ Product {product.id} updated: {product.name}")
    return product


async def _count_variant_references(db: AsyncSession, variant_ids: List[int]) -> Dict[str, int]:
    """Purchase lines, order lines and movements pointing at any of the variants"""
    counts = {}
    for label, model in (("purchase line", PurchaseItem), ("order line", OrderItem), ("stock movement", StockMovement)):
        counts[label] = (await db.execute(
            select(func.count(model.id)).where(model.variant_id.in_(variant_ids))
        )).scalar() or 0
    return counts


async def delete_product(db: AsyncSession, product_id: int) -> None:
    """Delete a product and its variants; refused while any transaction refers to them"""
    product = await get_product(db, product_id)
    variant_ids = [v.id for v in product.variants]
    if variant_ids:
        references = {label: n for label, n in (await _count_variant_references(db, variant_ids)).items() if n}
        if references:
            summary = ", ".join(f"{n} {label}(s)" for label, n in references.items())
            raise ConflictError(f"Product {product.name} is referenced by {summary} and cannot be deleted",
                                field="product_id")

    await db.delete(product)
    await db.flush()
    logger.info(f"🗑️ Product {product_id} deleted with {len(variant_ids)} variant(s)")


# ===== Parties =====
async def create_supplier(db: AsyncSession, supplier_in: SupplierCreate) -> Supplier:
    supplier = Supplier(**supplier_in.model_dump())
    db.add(supplier)
    await db.flush()
    logger.info(f"✅ Supplier created: {supplier.name}")
    return supplier


async def create_customer(db: AsyncSession, customer_in: CustomerCreate) -> Customer:
    customer = Customer(**customer_in.model_dump())
    db.add(customer)
    await db.flush()
    logger.info(f"✅ Customer created: {customer.name}")
    return customer


async def list_suppliers(db: AsyncSession, search: Optional[str] = None) -> List[Supplier]:
    query = select(Supplier)
    if search:
        query = query.where(Supplier.name.contains(search))
    result = await db.execute(query.order_by(Supplier.name))
    return list(result.scalars().all())


async def list_customers(db: AsyncSession, search: Optional[str] = None) -> List[Customer]:
    query = select(Customer)
    if search:
        query = query.where(Customer.name.contains(search))
    result = await db.execute(query.order_by(Customer.name))
    return list(result.scalars().all())


async def get_customer(db: AsyncSession, customer_id: int) -> CustomerDetailResponse:
    """Customer with order history, newest first"""
    customer = await require_customer(db, customer_id)
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.customer_id == customer_id)
        .order_by(Order.order_date.desc(), Order.id.desc())
    )
    detail = CustomerDetailResponse.model_validate(customer)
    detail.orders = [
        CustomerOrderSummary(
            id=order.id,
            invoice_no=order.invoice_no,
            order_date=order.order_date,
            status=order.status,
            item_count=len(order.items),
            total_quantity=sum(item.quantity for item in order.items),
            total_amount=order.total_amount)
        for order in result.scalars().all()
    ]
    return detail


async def update_customer(db: AsyncSession, customer_id: int, customer_in: CustomerUpdate) -> Customer:
    customer = await require_customer(db, customer_id)
    for field, value in customer_in.model_dump(exclude_unset=True).items():
        setattr(customer, field, value)
    await db.flush()
    logger.info(f"✏️ Customer {customer.id} updated: {customer.name}")
    return customer


async def delete_customer(db: AsyncSession, customer_id: int) -> None:
    customer = await require_customer(db, customer_id)
    orders_count = (await db.execute(
        select(func.count(Order.id)).where(Order.customer_id == customer_id)
    )).scalar() or 0
    if orders_count:
        raise ConflictError(f"Customer {customer.name} has {orders_count} order(s) and cannot be deleted",
                            field="customer_id")

    await db.delete(customer)
    await db.flush()
    logger.info(f"🗑️ Customer {customer_id} deleted")
