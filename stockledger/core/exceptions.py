"""
Ledger error taxonomy

Engines raise these; the API layer turns them into HTTP responses.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for errors the caller is allowed to see"""
    status_code = 400

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.field = field

    def to_dict(self) -> dict:
        body = {"detail": self.detail}
        if self.field:
            body["field"] = self.field
        return body


class NotFoundError(LedgerError):
    """Supplier, customer, variant, size, order or purchase missing"""
    status_code = 404


class ConflictError(LedgerError):
    """Request clashes with current state (duplicate invoice, locked document...)"""
    status_code = 409


class PurchaseAlreadyReceived(ConflictError):
    status_code = 400


class InsufficientStockError(ConflictError):
    pass


class ValidationError(LedgerError):
    """Malformed payload or values that do not add up"""
    status_code = 400


class TransactionFailure(LedgerError):
    """Store commit/rollback failure; detail stays generic"""
    status_code = 500

    def __init__(self, detail: str = "The operation could not be completed, please retry"):
        super().__init__(detail)
