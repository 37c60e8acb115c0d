from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import SalaryAuditAction, SalaryStatus
from ..payroll.model import PayrollBreakdown
from .model import SalaryAuditEntry, SalaryRecord


class SalaryRepository(Protocol):
    def get(self, salary_id: int) -> Optional[SalaryRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: int,
        period_start: date,
        period_end: date,
        pay_date: date,
        amount: Decimal,
        breakdown: PayrollBreakdown,
        status: SalaryStatus = SalaryStatus.PAID,
        correction_of: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def transition_status(self, salary_id: int, *, from_status: SalaryStatus, to_status: SalaryStatus) -> bool:
        """Conditional write; returns False when the row is no longer in `from_status`."""

        raise NotImplementedError

    def find_paid_for_period(self, *, employee_id: int, period_start: date, period_end: date) -> Optional[SalaryRecord]:
        """Paid record overlapping the period; a locking read inside a transaction."""

        raise NotImplementedError

    def list_missing_breakdown(self) -> Sequence[SalaryRecord]:
        """Records whose breakdown is NULL or an empty object."""

        raise NotImplementedError

    def set_breakdown_if_missing(self, salary_id: int, *, breakdown: PayrollBreakdown) -> bool:
        """Conditional write; returns False when a breakdown already exists."""

        raise NotImplementedError

    def list_missing_period(self) -> Sequence[SalaryRecord]:
        raise NotImplementedError

    def set_period_if_missing(self, salary_id: int, *, period_start: date, period_end: date) -> bool:
        raise NotImplementedError


class SalaryAuditRepository(Protocol):
    def record(
        self,
        *,
        salary_id: int,
        action: SalaryAuditAction,
        old_value: Optional[dict[str, Any]],
        new_value: Optional[dict[str, Any]],
        changed_by: str,
    ) -> int:
        raise NotImplementedError

    def list_for_salaries(self, salary_ids: Sequence[int]) -> Sequence[SalaryAuditEntry]:
        """Entries of all given salaries, oldest first."""

        raise NotImplementedError
