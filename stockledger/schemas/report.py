"""Report schemas"""
from typing import List
from decimal import Decimal
from pydantic import BaseModel


class EntityCounts(BaseModel):
    products: int = 0
    customers: int = 0
    suppliers: int = 0
    orders: int = 0


class LowStockItem(BaseModel):
    variant_id: int
    variant_name: str
    product_id: int
    product_name: str
    size: str
    stock: int
    selling_price: Decimal


class LowStockResponse(BaseModel):
    threshold: int
    data: List[LowStockItem]


class RecentProduct(BaseModel):
    id: int
    name: str
    hsn_code: int
    variant_count: int
    total_stock: int


class DashboardData(BaseModel):
    counts: EntityCounts
    recent_products: List[RecentProduct] = []
