"""
Status change log - every transition request against a purchase or order,
including the ones that were ignored
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index
from stockledger.db.base import Base


class StatusChange(Base):
    __tablename__ = "status_changes"
    __table_args__ = (
        Index("ix_status_changes_document", "document_type", "document_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # purchase / order
    document_type = Column(String(20), nullable=False, comment="Document type")
    document_id = Column(Integer, nullable=False, comment="Document id")

    from_status = Column(String(20), comment="Status before")
    to_status = Column(String(20), nullable=False, comment="Requested status")
    applied = Column(Boolean, nullable=False, default=True, comment="False when the request was ignored")
    note = Column(String(200), comment="Note")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        flag = "" if self.applied else " (ignored)"
        return f"<StatusChange {self.document_type}:{self.document_id} {self.from_status}->{self.to_status}{flag}>"
