"""
Sales order model

Order lines point at a variant and one of its sizes. Placing an order takes
the quantities out of the size counters; editing or deleting the order puts
them back.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from stockledger.db.base import Base
from stockledger.models.status import OrderStatus


class Order(Base):
    """Sales order"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # INV-YYYYMMDD-NNNN
    invoice_no = Column(String(50), unique=True, nullable=False, index=True, comment="Invoice number")
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    order_date = Column(DateTime, default=datetime.utcnow, index=True, comment="Order date")

    # pending / review / approved
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True, comment="Status")

    # bill discount
    discount_type = Column(String(20), default="none", comment="none / percentage / amount")
    discount_value = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="Discount as entered")
    discount_amount = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="Bill discount in currency")

    # tax config: either igst alone or cgst + sgst
    tax_type = Column(String(20), default="none", comment="none / igst / cgst_sgst")
    igst_rate = Column(DECIMAL(5, 2), default=Decimal("0.00"), comment="IGST %")
    cgst_rate = Column(DECIMAL(5, 2), default=Decimal("0.00"), comment="CGST %")
    sgst_rate = Column(DECIMAL(5, 2), default=Decimal("0.00"), comment="SGST %")
    igst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="IGST amount")
    cgst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="CGST amount")
    sgst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="SGST amount")

    subtotal = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Sum of line totals")
    taxable_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Subtotal less bill discount")
    total_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Grand total")

    notes = Column(Text, comment="Notes")
    remarks = Column(Text, comment="Internal remarks")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", foreign_keys=[customer_id])
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")

    def __repr__(self):
        return f"<Order {self.invoice_no} ({self.status})>"

    @property
    def is_locked(self) -> bool:
        """Approved orders can no longer be edited or deleted"""
        return self.status == OrderStatus.APPROVED.value
