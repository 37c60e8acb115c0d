from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import AssignmentStatus
from ..core.exceptions import ComputationError
from .strategies.base import ReconciliationStrategy, TransitionDecision
from .strategies.expired_strategy import ExpiredStrategy
from .strategies.partially_sold_strategy import PartiallySoldStrategy
from .strategies.sold_strategy import SoldStrategy


@dataclass
class ReconciliationStrategyFactory:
    """Factory Pattern: choose the settling strategy from the day's sold quantity.

    Outcomes are checked in a fixed order: sold out, nothing sold, partly sold.
    A zero-quantity assignment with no sales therefore counts as sold out.
    """

    def for_sales(self, *, quantity: int, sold_quantity: int) -> ReconciliationStrategy:
        if quantity < 0 or sold_quantity < 0:
            raise ComputationError(f"Negative quantity (assigned={quantity}, sold={sold_quantity})")

        if sold_quantity >= quantity:
            return SoldStrategy()
        if sold_quantity == 0:
            return ExpiredStrategy()
        return PartiallySoldStrategy()

    def decide(self, *, current: AssignmentStatus, quantity: int, sold_quantity: int) -> TransitionDecision:
        if current.is_terminal:
            raise ComputationError(f"Assignment already settled as {current.value}")

        decision = self.for_sales(quantity=quantity, sold_quantity=sold_quantity).decide(
            quantity=quantity, sold_quantity=sold_quantity
        )
        if current == AssignmentStatus.PARTIALLY_SOLD and decision.status == AssignmentStatus.EXPIRED:
            # Sales are append-only, so a partly sold assignment cannot fall back to none sold.
            raise ComputationError("Sales for a partially sold assignment disappeared")
        return decision
