from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Sequence

from ..core.enums import AssignmentStatus


class UnitResult(str, Enum):
    """What happened to one assignment during a run."""

    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AssignmentOutcome:
    assignment_id: int
    employee_id: int
    product_id: int
    result: UnitResult
    status: Optional[AssignmentStatus] = None
    sold_quantity: Optional[int] = None
    shortfall_quantity: Optional[int] = None
    oversold_quantity: int = 0
    changed: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignmentId": self.assignment_id,
            "employeeId": self.employee_id,
            "productId": self.product_id,
            "result": self.result.value,
            "status": self.status.value if self.status else None,
            "soldQuantity": self.sold_quantity,
            "shortfallQuantity": self.shortfall_quantity,
            "oversoldQuantity": self.oversold_quantity,
            "changed": self.changed,
            "error": self.error,
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    cohort_date: date
    selected: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    timed_out: int = 0
    cancelled: int = 0
    oversold: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    outcomes: tuple[AssignmentOutcome, ...] = ()

    @classmethod
    def from_outcomes(cls, cohort_date: date, outcomes: Sequence[AssignmentOutcome]) -> "ReconciliationSummary":
        results = Counter(o.result for o in outcomes)
        by_status = Counter(o.status.value for o in outcomes if o.result == UnitResult.UPDATED and o.status)
        return cls(
            cohort_date=cohort_date,
            selected=len(outcomes),
            processed=results[UnitResult.UPDATED],
            skipped=results[UnitResult.SKIPPED],
            failed=results[UnitResult.FAILED],
            timed_out=results[UnitResult.TIMED_OUT],
            cancelled=results[UnitResult.CANCELLED],
            oversold=sum(1 for o in outcomes if o.oversold_quantity > 0),
            by_status=dict(by_status),
            outcomes=tuple(outcomes),
        )

    def to_dict(self, *, include_outcomes: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "cohortDate": self.cohort_date.isoformat(),
            "selected": self.selected,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "timedOut": self.timed_out,
            "cancelled": self.cancelled,
            "oversold": self.oversold,
            "byStatus": dict(self.by_status),
        }
        if include_outcomes:
            data["outcomes"] = [o.to_dict() for o in self.outcomes]
        return data
