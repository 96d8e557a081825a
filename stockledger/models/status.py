"""
Document status vocabularies and their transition tables

Purchases and sales orders keep separate vocabularies (uppercase for
purchases, lowercase for orders) because existing records use them. Each
table lists every source state; an empty set marks a final state.
"""

from enum import Enum
from typing import Dict, FrozenSet


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    ORDERED = "ORDERED"
    APPROVED = "APPROVED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class OrderStatus(str, Enum):
    PENDING = "pending"
    REVIEW = "review"
    APPROVED = "approved"


PURCHASE_TRANSITIONS: Dict[PurchaseStatus, FrozenSet[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset({
        PurchaseStatus.ORDERED, PurchaseStatus.APPROVED,
        PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED,
    }),
    PurchaseStatus.ORDERED: frozenset({
        PurchaseStatus.APPROVED, PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED,
    }),
    PurchaseStatus.APPROVED: frozenset({PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED}),
    PurchaseStatus.RECEIVED: frozenset(),
    PurchaseStatus.CANCELLED: frozenset(),
}

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.REVIEW}),
    OrderStatus.REVIEW: frozenset({OrderStatus.PENDING, OrderStatus.APPROVED}),
    OrderStatus.APPROVED: frozenset(),
}

# the only source state the order status-transition call acts on
ORDER_GUARDED_SOURCE = OrderStatus.REVIEW


def can_transition_purchase(current: str, target: str) -> bool:
    return PurchaseStatus(target) in PURCHASE_TRANSITIONS[PurchaseStatus(current)]


def can_transition_order(current: str, target: str) -> bool:
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]
