from __future__ import annotations

from ...core.enums import AssignmentStatus
from .base import ReconciliationStrategy, TransitionDecision


class SoldStrategy(ReconciliationStrategy):
    """Everything sold. Sales beyond the quantity are reported, never a negative shortfall."""

    def decide(self, *, quantity: int, sold_quantity: int) -> TransitionDecision:
        return TransitionDecision(
            status=AssignmentStatus.SOLD,
            shortfall_quantity=0,
            oversold_quantity=max(sold_quantity - quantity, 0),
        )
