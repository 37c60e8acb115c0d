from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..core.enums import SalaryAuditAction, SalaryStatus
from ..payroll.model import PayrollBreakdown


@dataclass(frozen=True)
class SalaryRecord:
    """A paid (or superseded) salary for one employee and pay period.

    Historical rows may lack a breakdown or period bounds; the legacy repair
    utility fills them in.
    """

    salary_id: int
    employee_id: int
    period_start: Optional[date]
    period_end: Optional[date]
    amount: Decimal
    status: SalaryStatus
    pay_date: date
    breakdown: Optional[PayrollBreakdown] = None
    correction_of: Optional[int] = None

    def flattened(self) -> dict[str, Any]:
        """Record fields and breakdown fields merged at the same level.

        Consumers read e.g. `amount` and `baseSalary` side by side; breakdown
        keys win on collision, as they always have.
        """

        record = {
            "id": self.salary_id,
            "employeeId": self.employee_id,
            "startDate": self.period_start.isoformat() if self.period_start else None,
            "endDate": self.period_end.isoformat() if self.period_end else None,
            "payDate": self.pay_date.isoformat(),
            "amount": float(self.amount),
            "status": self.status.value,
            "correctionOf": self.correction_of,
        }
        if self.breakdown is not None:
            record.update(self.breakdown.to_dict())
        return record


@dataclass(frozen=True)
class SalaryAuditEntry:
    """One change to a salary row, with the row as it was before and after."""

    audit_id: int
    salary_id: int
    action: SalaryAuditAction
    old_value: Optional[dict[str, Any]]
    new_value: Optional[dict[str, Any]]
    changed_by: str
    changed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.audit_id,
            "salaryId": self.salary_id,
            "action": self.action.value,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "changedBy": self.changed_by,
            "changedAt": self.changed_at.isoformat(),
        }
