"""
Party directory - suppliers and customers

Referenced by id from purchases and orders, never embedded.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from stockledger.db.base import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True, comment="Company name")
    division = Column(String(100), comment="Division")
    phone = Column(String(20), comment="Phone")
    address = Column(String(200), comment="Address")

    # tax identity
    gstin = Column(String(15), comment="GSTIN")
    pan = Column(String(10), comment="PAN")
    cin = Column(String(21), comment="CIN")
    state_name = Column(String(50), comment="State")
    state_code = Column(Integer, default=0, comment="GST state code")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Supplier {self.id}: {self.name}>"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True, comment="Customer name")
    phone = Column(String(20), comment="Phone")
    address = Column(String(200), comment="Address")

    gstin = Column(String(15), comment="GSTIN")
    pan = Column(String(10), comment="PAN")
    state_name = Column(String(50), comment="State")
    state_code = Column(Integer, default=0, comment="GST state code")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Customer {self.id}: {self.name}>"
