"""Supplier / customer schemas"""
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Company name")
    division: Optional[str] = Field(None, max_length=100, description="Division")
    phone: Optional[str] = Field(None, max_length=20, description="Phone")
    address: Optional[str] = Field(None, max_length=200, description="Address")
    gstin: Optional[str] = Field(None, max_length=15, description="GSTIN")
    pan: Optional[str] = Field(None, max_length=10, description="PAN")
    cin: Optional[str] = Field(None, max_length=21, description="CIN")
    state_name: Optional[str] = Field(None, max_length=50, description="State")
    state_code: int = Field(default=0, ge=0, description="GST state code")


class SupplierCreate(SupplierBase):
    pass


class SupplierResponse(SupplierBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Customer name")
    phone: Optional[str] = Field(None, max_length=20, description="Phone")
    address: Optional[str] = Field(None, max_length=200, description="Address")
    gstin: Optional[str] = Field(None, max_length=15, description="GSTIN")
    pan: Optional[str] = Field(None, max_length=10, description="PAN")
    state_name: Optional[str] = Field(None, max_length=50, description="State")
    state_code: int = Field(default=0, ge=0, description="GST state code")


class CustomerCreate(CustomerBase):
    pass


class CustomerResponse(CustomerBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerUpdate(BaseModel):
    """Partial update, only the fields sent are changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=200)
    gstin: Optional[str] = Field(None, max_length=15)
    pan: Optional[str] = Field(None, max_length=10)
    state_name: Optional[str] = Field(None, max_length=50)
    state_code: Optional[int] = Field(None, ge=0)


class CustomerOrderSummary(BaseModel):
    """One row of a customer's order history"""
    id: int
    invoice_no: str
    order_date: Optional[datetime] = None
    status: str
    item_count: int = 0
    total_quantity: int = 0
    total_amount: Decimal


class CustomerDetailResponse(CustomerResponse):
    orders: List[CustomerOrderSummary] = []


class SupplierListResponse(BaseModel):
    data: List[SupplierResponse]
    total: int


class CustomerListResponse(BaseModel):
    data: List[CustomerResponse]
    total: int
