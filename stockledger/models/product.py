"""
Catalog models - Product -> Variant -> Size entries

Size entries are not rows of their own. They live in Variant.sizes as a JSON
array in the shape existing records use:

    {"size": "M", "stock": 12, "buyingPrice": 180.0, "sellingPrice": 250.0}

Variant.sizes must always be reassigned with a new list; in-place edits of
the JSON value are not tracked by the ORM.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from stockledger.db.base import Base


class Product(Base):
    """Product - name and tax classification, owns its variants"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True, comment="Product name")
    hsn_code = Column(Integer, nullable=False, default=0, comment="HSN tax classification code")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variants = relationship("Variant", back_populates="product", cascade="all, delete-orphan", order_by="Variant.id")

    def __repr__(self):
        return f"<Product {self.id}: {self.name} (HSN {self.hsn_code})>"


class Variant(Base):
    """Variant - the unit purchase and order lines point at"""
    __tablename__ = "variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), index=True, comment="Usual supplier")
    name = Column(String(100), nullable=False, comment="Variant name, e.g. a design")
    barcode = Column(String(64), unique=True, comment="Barcode value")
    barcode_type = Column(String(20), comment="Barcode symbology")

    # [{size, stock, buyingPrice, sellingPrice}, ...]
    sizes = Column(JSON, nullable=False, default=list, comment="Embedded size entries")

    # bumped on every write of sizes; a stale version aborts the flush
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    product = relationship("Product", back_populates="variants")
    supplier = relationship("Supplier", foreign_keys=[supplier_id])

    def __repr__(self):
        return f"<Variant {self.id}: {self.name} sizes={self.size_labels}>"

    @property
    def size_labels(self) -> List[str]:
        return [entry["size"] for entry in (self.sizes or [])]

    def find_size(self, label: str) -> Optional[dict]:
        """Size entry with this label, or None"""
        for entry in self.sizes or []:
            if entry["size"] == label:
                return entry
        return None

    def stock_of(self, label: str) -> Optional[int]:
        entry = self.find_size(label)
        return int(entry["stock"]) if entry is not None else None

    def with_stock(self, label: str, new_stock: int) -> List[dict]:
        """Copy of the size collection with one counter replaced"""
        sizes = []
        for entry in self.sizes or []:
            entry = dict(entry)
            if entry["size"] == label:
                entry["stock"] = int(new_stock)
            sizes.append(entry)
        return sizes

    @property
    def total_stock(self) -> int:
        return sum(int(entry.get("stock") or 0) for entry in (self.sizes or []))


def size_entry(size: str, stock: int, buying_price, selling_price) -> dict:
    """Build a size entry in its stored shape"""
    return {
        "size": size,
        "stock": int(stock),
        "buyingPrice": float(Decimal(str(buying_price))),
        "sellingPrice": float(Decimal(str(selling_price))),
    }
