from __future__ import annotations

from ...core.enums import AssignmentStatus
from .base import ReconciliationStrategy, TransitionDecision


class PartiallySoldStrategy(ReconciliationStrategy):
    def decide(self, *, quantity: int, sold_quantity: int) -> TransitionDecision:
        return TransitionDecision(
            status=AssignmentStatus.PARTIALLY_SOLD,
            shortfall_quantity=quantity - sold_quantity,
        )
