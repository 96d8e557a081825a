"""Catalog schemas"""
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


# ===== Size entries =====
class SizeEntry(BaseModel):
    """Size entry in its stored shape (camelCase keys kept for existing records)"""
    size: str = Field(..., min_length=1, max_length=50, description="Size label")
    stock: int = Field(default=0, description="Stock count")
    buying_price: Decimal = Field(default=Decimal("0"), ge=0, alias="buyingPrice", description="Buying price")
    selling_price: Decimal = Field(default=Decimal("0"), ge=0, alias="sellingPrice", description="Selling price")

    class Config:
        populate_by_name = True


def _check_unique_sizes(sizes: List[SizeEntry]) -> List[SizeEntry]:
    labels = [s.size for s in sizes]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ValueError(f"duplicate size labels: {', '.join(duplicates)}")
    return sizes


# ===== Variants =====
class VariantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Variant name")
    supplier_id: Optional[int] = Field(None, description="Usual supplier")
    barcode: Optional[str] = Field(None, max_length=64, description="Barcode")


class VariantCreate(VariantBase):
    """Variant inside a new product"""
    sizes: List[SizeEntry] = Field(default_factory=list, description="Size entries")

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, v: List[SizeEntry]) -> List[SizeEntry]:
        return _check_unique_sizes(v)

    @field_validator("sizes")
    @classmethod
    def opening_stock_not_negative(cls, v: List[SizeEntry]) -> List[SizeEntry]:
        for entry in v:
            if entry.stock < 0:
                raise ValueError(f"opening stock of size {entry.size} cannot be negative")
        return v


class VariantAdd(VariantCreate):
    """Variant added to an existing product"""
    product_id: int = Field(..., description="Parent product")


class VariantResponse(VariantBase):
    id: int
    product_id: int
    product_name: str = ""
    hsn_code: int = 0
    barcode_type: Optional[str] = None
    sizes: List[SizeEntry] = []
    total_stock: int = 0
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


# ===== Products =====
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Product name")
    hsn_code: int = Field(default=0, ge=0, description="HSN code")
    variants: List[VariantCreate] = Field(default_factory=list, description="Variants")


class ProductUpdate(BaseModel):
    """Rename or re-code a product; variants are managed separately"""
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Product name")
    hsn_code: Optional[int] = Field(None, ge=0, description="HSN code")


class ProductResponse(BaseModel):
    id: int
    name: str
    hsn_code: int
    variants: List[VariantResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    data: List[ProductResponse]
    total: int
    page: int
    limit: int
