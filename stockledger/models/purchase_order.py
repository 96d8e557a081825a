"""
Purchase order model - goods bought from a supplier

Money fields are computed once when the purchase is recorded and stored;
they are never re-derived from the items on read.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL, Boolean
from sqlalchemy.orm import relationship
from stockledger.db.base import Base
from stockledger.models.status import PurchaseStatus


class PurchaseOrder(Base):
    """Purchase order - supplier invoice plus its lines"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    invoice_no = Column(String(50), unique=True, nullable=False, index=True, comment="Supplier invoice number")
    purchase_date = Column(DateTime, default=datetime.utcnow, index=True, comment="Invoice date")
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    # PENDING / ORDERED / APPROVED / RECEIVED / CANCELLED
    status = Column(String(20), nullable=False, default=PurchaseStatus.PENDING.value, index=True, comment="Status")
    notes = Column(Text, comment="Notes")

    # bill discount as entered
    discount_type = Column(String(20), default="none", comment="none / percentage / amount")
    discount_value = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="Discount as entered")

    # money
    subtotal = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Sum of line totals")
    discount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Bill discount in currency")
    taxable_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Subtotal less bill discount")
    tax_type = Column(String(20), default="none", comment="none / igst / cgst_sgst")
    cgst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="CGST amount")
    sgst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="SGST amount")
    igst = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="IGST amount")
    total_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), index=True, comment="Grand total")

    # whether the line quantities have been added to the size counters
    stock_applied = Column(Boolean, nullable=False, default=False, comment="Stock incremented")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    received_at = Column(DateTime, comment="Time the goods were received")

    supplier = relationship("Supplier", foreign_keys=[supplier_id])
    items = relationship("PurchaseItem", back_populates="purchase_order", cascade="all, delete-orphan", order_by="PurchaseItem.id")

    def __repr__(self):
        return f"<PurchaseOrder {self.invoice_no} ({self.status})>"

    @property
    def is_received(self) -> bool:
        return self.status == PurchaseStatus.RECEIVED.value

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class PurchaseItem(Base):
    """Purchase line - one variant size"""
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False, index=True)
    size = Column(String(50), nullable=False, comment="Size label inside the variant")

    quantity = Column(Integer, nullable=False, comment="Quantity")
    unit_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Unit price")
    discount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Line discount in currency")
    # quantity x unit_price - discount
    total_price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Line total")

    created_at = Column(DateTime, default=datetime.utcnow)

    purchase_order = relationship("PurchaseOrder", back_populates="items")
    variant = relationship("Variant", foreign_keys=[variant_id])

    def __repr__(self):
        return f"<PurchaseItem {self.variant_id}/{self.size} x {self.quantity} @ {self.unit_price}>"
