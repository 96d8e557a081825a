"""
Read-only aggregation over the store; nothing here writes
"""

from typing import Dict, List, Optional
from decimal import Decimal
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stockledger.core.config import settings
from stockledger.models.order import Order
from stockledger.models.party import Supplier, Customer
from stockledger.models.product import Product, Variant
from stockledger.models.purchase_order import PurchaseOrder
from stockledger.schemas.purchase import PurchaseFilters, PurchaseListResponse, PurchaseSummary
from stockledger.schemas.report import (
    DashboardData, EntityCounts, LowStockItem, LowStockResponse, RecentProduct
)
from stockledger.services.purchases import base_purchase_query, build_purchase_response


async def list_purchases(db: AsyncSession, filters: Optional[PurchaseFilters] = None) -> PurchaseListResponse:
    """Filtered purchases, newest first, with an overall summary"""
    filters = filters or PurchaseFilters()
    conditions = []
    if filters.supplier_id:
        conditions.append(PurchaseOrder.supplier_id == filters.supplier_id)
    if filters.status:
        conditions.append(PurchaseOrder.status == filters.status.value)
    if filters.start_date:
        conditions.append(PurchaseOrder.purchase_date >= filters.start_date)
    if filters.end_date:
        conditions.append(PurchaseOrder.purchase_date <= filters.end_date)
    if filters.min_amount is not None:
        conditions.append(PurchaseOrder.total_amount >= filters.min_amount)
    if filters.max_amount is not None:
        conditions.append(PurchaseOrder.total_amount <= filters.max_amount)

    query = base_purchase_query()
    if conditions:
        query = query.where(and_(*conditions))
    result = await db.execute(query.order_by(PurchaseOrder.purchase_date.desc(), PurchaseOrder.id.desc()))
    purchases = result.scalars().all()

    data = [build_purchase_response(p) for p in purchases]

    status_breakdown: Dict[str, int] = {}
    supplier_breakdown: Dict[str, int] = {}
    total_amount = Decimal("0.00")
    total_items = 0
    for purchase in data:
        status_breakdown[purchase.status] = status_breakdown.get(purchase.status, 0) + 1
        supplier_name = purchase.supplier.name if purchase.supplier else "Unknown"
        supplier_breakdown[supplier_name] = supplier_breakdown.get(supplier_name, 0) + 1
        total_amount += purchase.total_amount
        total_items += purchase.items_summary.total_items

    return PurchaseListResponse(
        data=data,
        summary=PurchaseSummary(
            total_purchases=len(data),
            total_amount=total_amount,
            total_items=total_items,
            status_breakdown=status_breakdown,
            supplier_breakdown=supplier_breakdown))


async def get_counts(db: AsyncSession) -> EntityCounts:
    async def count(model) -> int:
        return (await db.execute(select(func.count(model.id)))).scalar() or 0

    return EntityCounts(
        products=await count(Product),
        customers=await count(Customer),
        suppliers=await count(Supplier),
        orders=await count(Order))


async def recent_products(db: AsyncSession, limit: int = 10) -> List[RecentProduct]:
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.variants))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
    )
    return [
        RecentProduct(
            id=p.id,
            name=p.name,
            hsn_code=p.hsn_code,
            variant_count=len(p.variants),
            total_stock=sum(v.total_stock for v in p.variants))
        for p in result.scalars().all()
    ]


async def dashboard(db: AsyncSession, limit: int = 10) -> DashboardData:
    return DashboardData(counts=await get_counts(db), recent_products=await recent_products(db, limit))


async def low_stock(db: AsyncSession, threshold: Optional[int] = None) -> LowStockResponse:
    """Every size entry whose counter is at or below the threshold"""
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD

    result = await db.execute(
        select(Variant).options(selectinload(Variant.product)).order_by(Variant.product_id, Variant.id)
    )
    items = []
    for variant in result.scalars().all():
        for entry in variant.sizes or []:
            stock = int(entry.get("stock") or 0)
            if stock <= threshold:
                items.append(LowStockItem(
                    variant_id=variant.id,
                    variant_name=variant.name,
                    product_id=variant.product_id,
                    product_name=variant.product.name if variant.product else "",
                    size=entry["size"],
                    stock=stock,
                    selling_price=Decimal(str(entry.get("sellingPrice") or 0))))

    items.sort(key=lambda item: item.stock)
    return LowStockResponse(threshold=threshold, data=items)
