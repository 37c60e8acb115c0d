from __future__ import annotations

import logging
from contextlib import nullcontext
from datetime import date
from typing import Any, Callable, ContextManager, Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import period_window
from ..common.validators import require_date_range
from ..core.enums import SalaryAuditAction, SalaryStatus
from ..core.exceptions import ComputationError, ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..salaries.model import SalaryAuditEntry, SalaryRecord
from ..salaries.repository import SalaryAuditRepository, SalaryRepository
from ..sales.repository import SalesRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import PayrollConfig, PayrollInputs, PayrollOverrides, PayrollResult

logger = logging.getLogger(__name__)

DEFAULT_CHANGED_BY = "admin"


class PayrollService:
    """On-demand payroll: gathers inputs read-only and delegates the math to a calculator.

    Errors are raised to the caller; nothing here falls back to defaults
    silently.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        sales: SalesRepository,
        salaries: SalaryRepository,
        *,
        calculator: Optional[PayrollCalculator] = None,
        default_config: Optional[PayrollConfig] = None,
        audit: Optional[SalaryAuditRepository] = None,
        unit_of_work: Callable[[], ContextManager] = nullcontext,
    ):
        self._employees = employees
        self._attendance = attendance
        self._sales = sales
        self._salaries = salaries
        self._calculator = calculator or StandardPayrollCalculator()
        self._default_config = default_config or PayrollConfig()
        self._audit = audit
        self._unit_of_work = unit_of_work

    @property
    def default_config(self) -> PayrollConfig:
        return self._default_config

    def compute_breakdown(
        self,
        *,
        employee_id: int,
        period_start: date,
        period_end: date,
        config: Optional[PayrollConfig] = None,
        overrides: Optional[PayrollOverrides] = None,
    ) -> PayrollResult:
        require_date_range(period_start, period_end)
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError(f"Employee {employee_id} not found")

        start_at, end_at = period_window(period_start, period_end)
        inputs = PayrollInputs(
            employee_id=employee.employee_id,
            period_start=period_start,
            period_end=period_end,
            attendance=tuple(
                self._attendance.list_attendance(
                    employee_id=employee.employee_id, start_date=period_start, end_date=period_end
                )
            ),
            sales=tuple(self._sales.list_sales(employee_id=employee.employee_id, start=start_at, end=end_at)),
            overrides=overrides or PayrollOverrides(),
        )
        result = self._calculator.calculate(inputs, config or self._default_config)
        if result.breakdown.clamped:
            logger.warning(
                "Payroll for employee=%s period=%s..%s clamped at 0 (gross %s)",
                employee.employee_id,
                period_start,
                period_end,
                result.breakdown.gross_total(),
            )
        return result

    def process_salary(
        self,
        *,
        employee_id: int,
        period_start: date,
        period_end: date,
        pay_date: Optional[date] = None,
        config: Optional[PayrollConfig] = None,
        overrides: Optional[PayrollOverrides] = None,
        changed_by: str = DEFAULT_CHANGED_BY,
    ) -> SalaryRecord:
        require_date_range(period_start, period_end)
        result = self.compute_breakdown(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            config=config,
            overrides=overrides,
        )
        self._verify(result)

        with self._unit_of_work():
            # concurrent requests for the same employee queue here until commit
            if not self._employees.lock_for_payroll(result.employee_id):
                raise NotFoundError(f"Employee {result.employee_id} not found")
            existing = self._salaries.find_paid_for_period(
                employee_id=result.employee_id, period_start=period_start, period_end=period_end
            )
            if existing:
                raise ConflictError("Salary already paid for this period.")

            salary_id = self._salaries.create(
                employee_id=result.employee_id,
                period_start=period_start,
                period_end=period_end,
                pay_date=pay_date or period_start,
                amount=result.amount,
                breakdown=result.breakdown,
            )
            self._record_audit(salary_id, SalaryAuditAction.CREATE, old=None, changed_by=changed_by)
        logger.info("Salary %s processed for employee=%s amount=%s", salary_id, result.employee_id, result.amount)
        return self.get_salary(salary_id)

    def correct_salary(
        self,
        *,
        salary_id: int,
        config: Optional[PayrollConfig] = None,
        overrides: Optional[PayrollOverrides] = None,
        changed_by: str = DEFAULT_CHANGED_BY,
    ) -> SalaryRecord:
        """Supersede a paid salary with a recomputed one; the original is kept as CORRECTED."""

        original = self.get_salary(salary_id)
        if original.status == SalaryStatus.CORRECTED:
            raise ConflictError("This salary has already been corrected.")
        if original.period_start is None or original.period_end is None:
            raise ValidationError("Salary has no pay period; run the period backfill first.")

        result = self.compute_breakdown(
            employee_id=original.employee_id,
            period_start=original.period_start,
            period_end=original.period_end,
            config=config,
            overrides=overrides,
        )
        self._verify(result)

        with self._unit_of_work():
            if not self._salaries.transition_status(
                original.salary_id, from_status=SalaryStatus.PAID, to_status=SalaryStatus.CORRECTED
            ):
                raise ConflictError("This salary has already been corrected.")
            new_id = self._salaries.create(
                employee_id=original.employee_id,
                period_start=original.period_start,
                period_end=original.period_end,
                pay_date=original.pay_date,
                amount=result.amount,
                breakdown=result.breakdown,
                correction_of=original.salary_id,
            )
            self._record_audit(new_id, SalaryAuditAction.CORRECT, old=original, changed_by=changed_by)
        logger.info("Salary %s corrected by %s amount=%s", original.salary_id, new_id, result.amount)
        return self.get_salary(new_id)

    def get_salary(self, salary_id: int) -> SalaryRecord:
        record = self._salaries.get(int(salary_id))
        if not record:
            raise NotFoundError(f"Salary {salary_id} not found")
        return record

    def get_salary_view(self, salary_id: int) -> dict[str, Any]:
        return self.get_salary(salary_id).flattened()

    def correction_chain(self, salary_id: int) -> list[SalaryRecord]:
        """The record followed by every record it corrected, newest first."""

        chain = [self.get_salary(salary_id)]
        seen = {chain[0].salary_id}
        while chain[-1].correction_of is not None and chain[-1].correction_of not in seen:
            previous = self._salaries.get(chain[-1].correction_of)
            if previous is None:
                logger.warning("Salary %s corrects missing salary %s", chain[-1].salary_id, chain[-1].correction_of)
                break
            seen.add(previous.salary_id)
            chain.append(previous)
        return chain

    def audit_trail(self, chain: list[SalaryRecord]) -> list[SalaryAuditEntry]:
        if self._audit is None:
            return []
        return list(self._audit.list_for_salaries([r.salary_id for r in chain]))

    def _record_audit(
        self, salary_id: int, action: SalaryAuditAction, *, old: Optional[SalaryRecord], changed_by: str
    ) -> None:
        if self._audit is None:
            return
        # read back inside the same transaction so the entry matches what was written
        new = self._salaries.get(salary_id)
        self._audit.record(
            salary_id=salary_id,
            action=action,
            old_value=old.flattened() if old else None,
            new_value=new.flattened() if new else None,
            changed_by=changed_by,
        )

    @staticmethod
    def _verify(result: PayrollResult) -> None:
        expected = result.breakdown.expected_amount()
        if result.amount != expected:
            raise ComputationError(
                f"Amount {result.amount} does not match breakdown components {expected}"
            )
