"""
Stock movement log - append-only history behind every size counter

For each (variant, size) the counter in Variant.sizes equals the sum of
quantity_change over its movements. The counter is the read model; this
table is what it can be audited and rebuilt from.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from stockledger.db.base import Base


class StockMovement(Base):
    """One change to one size counter"""
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_variant_size", "variant_id", "size"),
    )

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("variants.id"), nullable=False)
    size = Column(String(50), nullable=False, comment="Size label")

    # opening: stock entered with the catalog entry
    # purchase_receipt / purchase_reversal: purchase received / cancelled
    # order_issue / order_restock: order placed or grown / shrunk or deleted
    # adjustment: manual count
    movement_type = Column(String(30), nullable=False, index=True, comment="Movement type")

    # signed, positive adds to stock
    quantity_change = Column(Integer, nullable=False, comment="Change")
    stock_before = Column(Integer, nullable=False, comment="Counter before")
    stock_after = Column(Integer, nullable=False, comment="Counter after")

    purchase_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="SET NULL"), index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), index=True)

    reason = Column(String(200), comment="Reason")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    variant = relationship("Variant", foreign_keys=[variant_id])

    def __repr__(self):
        return f"<StockMovement {self.variant_id}/{self.size}: {self.movement_type} {self.quantity_change:+d}>"

    @property
    def type_display(self) -> str:
        type_map = {
            "opening": "Opening stock",
            "purchase_receipt": "Purchase receipt",
            "purchase_reversal": "Purchase reversal",
            "order_issue": "Order issue",
            "order_restock": "Order restock",
            "adjustment": "Adjustment",
        }
        return type_map.get(self.movement_type, self.movement_type)
