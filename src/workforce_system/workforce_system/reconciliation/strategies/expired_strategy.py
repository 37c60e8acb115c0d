from __future__ import annotations

from ...core.enums import AssignmentStatus
from .base import ReconciliationStrategy, TransitionDecision


class ExpiredStrategy(ReconciliationStrategy):
    """Nothing sold: the whole quantity is short."""

    def decide(self, *, quantity: int, sold_quantity: int) -> TransitionDecision:
        return TransitionDecision(status=AssignmentStatus.EXPIRED, shortfall_quantity=quantity)
