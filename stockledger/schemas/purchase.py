"""Purchase order schemas"""
from typing import Optional, List, Dict
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from stockledger.models.status import PurchaseStatus
from stockledger.schemas.pricing import Discount, TaxConfig


# ===== Lines =====
class PurchaseItemCreate(BaseModel):
    variant_id: int = Field(..., description="Variant ID")
    size: str = Field(..., min_length=1, max_length=50, description="Size label inside the variant")
    quantity: int = Field(..., gt=0, description="Quantity")
    unit_price: Decimal = Field(..., ge=0, description="Unit price")
    discount: Decimal = Field(default=Decimal("0"), ge=0, description="Line discount in currency")
    total_price: Optional[Decimal] = Field(None, description="Line total as computed by the caller")


class VariantSnapshot(BaseModel):
    """Variant as seen from a document line"""
    id: int
    name: str
    size: str
    stock: Optional[int] = None
    buying_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None


class ProductSnapshot(BaseModel):
    id: Optional[int] = None
    name: str = ""
    hsn_code: int = 0


class PurchaseItemResponse(BaseModel):
    id: int
    variant_id: int
    size: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    total_price: Decimal
    variant: Optional[VariantSnapshot] = None
    product: Optional[ProductSnapshot] = None


# ===== Purchase orders =====
class PurchaseCreate(BaseModel):
    """Record a purchase

    Money fields are optional; when given they must match what the
    server computes from the lines.
    """
    supplier_id: int = Field(..., description="Supplier ID")
    invoice_no: str = Field(..., min_length=1, max_length=50, description="Supplier invoice number")
    purchase_date: Optional[datetime] = Field(None, description="Invoice date")
    status: PurchaseStatus = Field(default=PurchaseStatus.PENDING, description="Initial status")
    notes: Optional[str] = Field(None, description="Notes")
    bill_discount: Discount = Field(default_factory=Discount, description="Bill discount")
    tax: TaxConfig = Field(default_factory=TaxConfig, description="Tax configuration")
    items: List[PurchaseItemCreate] = Field(..., min_length=1, description="Lines")

    # figures computed by the caller, checked not trusted
    subtotal: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    taxable_amount: Optional[Decimal] = None
    cgst: Optional[Decimal] = None
    sgst: Optional[Decimal] = None
    igst: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None

    @field_validator("status")
    @classmethod
    def not_cancelled(cls, v: PurchaseStatus) -> PurchaseStatus:
        if v == PurchaseStatus.CANCELLED:
            raise ValueError("a purchase cannot be recorded as CANCELLED")
        return v


class SupplierSnapshot(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    cin: Optional[str] = None
    state_name: Optional[str] = None
    state_code: int = 0
    division: Optional[str] = None


class ItemsSummary(BaseModel):
    total_items: int = 0
    total_quantity: int = 0
    unique_products: int = 0
    unique_variants: int = 0


class PurchaseResponse(BaseModel):
    id: int
    invoice_no: str
    purchase_date: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    discount_type: str = "none"
    discount_value: Decimal = Decimal("0.00")
    subtotal: Decimal
    discount: Decimal
    taxable_amount: Decimal
    tax_type: str = "none"
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_amount: Decimal
    stock_applied: bool
    received_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    supplier: Optional[SupplierSnapshot] = None
    items: List[PurchaseItemResponse] = []
    items_summary: ItemsSummary = Field(default_factory=ItemsSummary)


class PurchaseCreatedResponse(BaseModel):
    id: int


class PurchaseApproveResponse(BaseModel):
    status: str
    purchase_order: PurchaseResponse


class PurchaseStatusChange(BaseModel):
    status: PurchaseStatus = Field(..., description="Target status")


class PurchaseSummary(BaseModel):
    total_purchases: int = 0
    total_amount: Decimal = Decimal("0.00")
    total_items: int = 0
    status_breakdown: Dict[str, int] = {}
    supplier_breakdown: Dict[str, int] = {}


class PurchaseListResponse(BaseModel):
    data: List[PurchaseResponse]
    summary: PurchaseSummary


class PurchaseFilters(BaseModel):
    supplier_id: Optional[int] = None
    status: Optional[PurchaseStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
