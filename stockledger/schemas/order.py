"""Sales order schemas"""
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field, model_validator

from stockledger.models.status import OrderStatus
from stockledger.schemas.pricing import Discount, TaxConfig
from stockledger.schemas.purchase import VariantSnapshot, ProductSnapshot


def split_variant_size_key(key: str):
    """
    "<variantId>-<size>" -> (variant_id, size)

    The order screen lists one row per variant size and sends that row key
    back as the line id. Variant ids are numeric, so the first dash splits.
    """
    variant_part, sep, size = key.partition("-")
    if not sep or not variant_part.isdigit() or not size:
        raise ValueError(f"invalid variant-size key: {key!r}")
    return int(variant_part), size


# ===== Lines =====
class OrderItemCreate(BaseModel):
    """Order line; either variant_id + size, or the combined key in id"""
    id: Optional[str] = Field(None, description="Combined <variantId>-<size> key")
    variant_id: Optional[int] = Field(None, description="Variant ID")
    size: Optional[str] = Field(None, max_length=50, description="Size label")
    quantity: int = Field(..., gt=0, description="Quantity")
    rate: Decimal = Field(..., ge=0, validation_alias=AliasChoices("rate", "price"), description="Unit rate")
    discount: Discount = Field(default_factory=Discount, description="Line discount")

    @model_validator(mode="after")
    def resolve_variant_size(self):
        if self.id and (self.variant_id is None or not self.size):
            variant_id, size = split_variant_size_key(self.id)
            if self.variant_id is None:
                self.variant_id = variant_id
            if not self.size:
                self.size = size
        if self.variant_id is None or not self.size:
            raise ValueError("each line needs variant_id and size (or a <variantId>-<size> id)")
        return self


class OrderItemResponse(BaseModel):
    id: int
    variant_id: int
    size: str
    quantity: int
    rate: Decimal
    discount_type: str = "none"
    discount_value: Decimal = Decimal("0.00")
    discount: Decimal
    total: Decimal
    variant: Optional[VariantSnapshot] = None
    product: Optional[ProductSnapshot] = None


# ===== Orders =====
class OrderCreate(BaseModel):
    customer_id: int = Field(..., description="Customer ID")
    order_date: Optional[datetime] = Field(None, description="Order date, defaults to now")
    notes: Optional[str] = Field(None, description="Notes")
    remarks: Optional[str] = Field(None, description="Internal remarks")
    bill_discount: Discount = Field(default_factory=Discount, description="Bill discount")
    tax: TaxConfig = Field(default_factory=TaxConfig, description="Tax configuration")
    items: List[OrderItemCreate] = Field(..., min_length=1, description="Lines")


class OrderUpdate(BaseModel):
    """Replace an order

    Omitted bill_discount / tax reset to none; a given items list replaces
    every existing line.
    """
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    remarks: Optional[str] = None
    bill_discount: Discount = Field(default_factory=Discount)
    tax: TaxConfig = Field(default_factory=TaxConfig)
    items: Optional[List[OrderItemCreate]] = None


class OrderStatusTransition(BaseModel):
    status: OrderStatus = Field(..., description="Status as last seen by the caller")
    new_status: OrderStatus = Field(
        ..., validation_alias=AliasChoices("new_status", "newStatus"), description="Requested status")


class OrderStatusAck(BaseModel):
    id: int
    applied: bool
    status: str
    message: str = ""


class CustomerSnapshot(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    state_name: Optional[str] = None
    state_code: int = 0


class OrderResponse(BaseModel):
    id: int
    invoice_no: str
    customer_id: int
    customer: Optional[CustomerSnapshot] = None
    order_date: Optional[datetime] = None
    status: str
    bill_discount: Discount
    tax: TaxConfig
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    igst: Decimal
    cgst: Decimal
    sgst: Decimal
    total_amount: Decimal
    notes: Optional[str] = None
    remarks: Optional[str] = None
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    data: List[OrderResponse]
    total: int
    page: int
    limit: int
