from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AssignmentStatus
from .model import Assignment


class AssignmentRepository(Protocol):
    """Inventory ledger interface.

    The reconciliation engine is the only writer of status/shortfall.
    """

    def find_open_assignments(self, cohort_date: date) -> Sequence[Assignment]:
        """Assignments assigned on `cohort_date` whose status is still open."""

        raise NotImplementedError

    def get(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def get_for_update(self, assignment_id: int) -> Optional[Assignment]:
        """Like `get`, but locks the row until the surrounding transaction ends."""

        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: int,
        product_id: int,
        assigned_at: datetime,
        quantity: int,
    ) -> int:
        raise NotImplementedError

    def update_assignment(self, assignment_id: int, *, status: AssignmentStatus, shortfall_quantity: int) -> None:
        """Write status and shortfall together; raises PersistenceError if nothing was written."""

        raise NotImplementedError
