from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import AssignmentStatus


@dataclass(frozen=True)
class TransitionDecision:
    status: AssignmentStatus
    shortfall_quantity: int
    oversold_quantity: int = 0


class ReconciliationStrategy(ABC):
    """Strategy Pattern: encapsulate how a day's sales settle an assignment."""

    @abstractmethod
    def decide(self, *, quantity: int, sold_quantity: int) -> TransitionDecision:
        raise NotImplementedError
