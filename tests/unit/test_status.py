"""
Unit tests for the status vocabularies and transition tables.
"""
import pytest

from stockledger.models.status import (
    ORDER_TRANSITIONS, PURCHASE_TRANSITIONS, OrderStatus, PurchaseStatus,
    can_transition_order, can_transition_purchase
)


@pytest.mark.unit
class TestTransitionTables:

    def test_every_state_has_an_entry(self):
        assert set(PURCHASE_TRANSITIONS) == set(PurchaseStatus)
        assert set(ORDER_TRANSITIONS) == set(OrderStatus)

    def test_final_states(self):
        assert PURCHASE_TRANSITIONS[PurchaseStatus.RECEIVED] == frozenset()
        assert PURCHASE_TRANSITIONS[PurchaseStatus.CANCELLED] == frozenset()
        assert ORDER_TRANSITIONS[OrderStatus.APPROVED] == frozenset()

    def test_purchase_edges(self):
        assert can_transition_purchase("PENDING", "RECEIVED")
        assert can_transition_purchase("ORDERED", "APPROVED")
        assert can_transition_purchase("APPROVED", "CANCELLED")
        assert not can_transition_purchase("RECEIVED", "CANCELLED")
        assert not can_transition_purchase("APPROVED", "PENDING")

    def test_order_edges(self):
        assert can_transition_order("pending", "review")
        assert can_transition_order("review", "approved")
        assert can_transition_order("review", "pending")
        assert not can_transition_order("pending", "approved")
        assert not can_transition_order("approved", "review")

    def test_vocabularies_stay_distinct(self):
        """Purchases use uppercase values, orders lowercase."""
        assert PurchaseStatus.PENDING.value == "PENDING"
        assert OrderStatus.PENDING.value == "pending"
        with pytest.raises(ValueError):
            can_transition_order("PENDING", "review")
