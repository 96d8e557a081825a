"""
Order line model
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from stockledger.db.base import Base


class OrderItem(Base):
    """Order line - one variant size"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False, index=True)
    size = Column(String(50), nullable=False, comment="Size label inside the variant")

    quantity = Column(Integer, nullable=False, comment="Quantity")
    rate = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Unit rate")

    # line discount as entered, and resolved to currency
    discount_type = Column(String(20), default="none", comment="none / percentage / amount")
    discount_value = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="Discount as entered")
    discount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Line discount in currency")

    # quantity x rate - discount
    total = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="Line total")

    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    variant = relationship("Variant", foreign_keys=[variant_id])

    def __repr__(self):
        return f"<OrderItem {self.variant_id}/{self.size} x {self.quantity} @ {self.rate}>"
