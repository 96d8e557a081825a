"""Discount / tax descriptors and bill totals"""
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, Field, model_validator


DiscountType = Literal["none", "percentage", "amount"]
TaxType = Literal["none", "igst", "cgst_sgst"]


class Discount(BaseModel):
    """Discount as entered - percentage of the base or a fixed amount"""
    type: DiscountType = Field(default="none", description="none / percentage / amount")
    value: Decimal = Field(default=Decimal("0"), ge=0, description="Percent or currency amount")

    @model_validator(mode="after")
    def check_percentage(self):
        if self.type == "percentage" and self.value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class TaxConfig(BaseModel):
    """Tax descriptor - IGST alone, or CGST and SGST as two co-equal parts"""
    type: TaxType = Field(default="none", description="none / igst / cgst_sgst")
    igst_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="IGST %")
    cgst_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="CGST %")
    sgst_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, description="SGST %")


class BillTotals(BaseModel):
    """Finalised bill, every field rounded to 0.01"""
    subtotal: Decimal
    discount: Decimal
    taxable_amount: Decimal
    cgst: Decimal = Decimal("0.00")
    sgst: Decimal = Decimal("0.00")
    igst: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    total: Decimal
