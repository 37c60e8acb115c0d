from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import AssignmentStatus


@dataclass(frozen=True)
class Assignment:
    """Domain entity: a quantity of one product given to one employee for one day."""

    assignment_id: int
    employee_id: int
    product_id: int
    assigned_at: datetime
    quantity: int
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    shortfall_quantity: int = 0

    @property
    def cohort_date(self):
        return self.assigned_at.date()
