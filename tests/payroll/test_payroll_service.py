from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.workforce_system.workforce_system.attendance.model import AttendanceRecord
from src.workforce_system.workforce_system.core.enums import SalaryAuditAction, SalaryStatus
from src.workforce_system.workforce_system.core.exceptions import (
    ComputationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.workforce_system.workforce_system.employees.model import Employee
from src.workforce_system.workforce_system.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.workforce_system.workforce_system.payroll.model import PayrollConfig, PayrollOverrides
from src.workforce_system.workforce_system.payroll.service import PayrollService
from src.workforce_system.workforce_system.salaries.model import SalaryAuditEntry, SalaryRecord
from src.workforce_system.workforce_system.sales.model import SaleEvent

MARCH_START = date(2025, 3, 1)
MARCH_END = date(2025, 3, 31)


class FakeEmployeesRepo:
    def __init__(self, log=None):
        self.log = log if log is not None else []

    def get_by_id(self, employee_id):
        if employee_id == 1:
            return Employee(employee_id=1, full_name="Lan Nguyen")
        return None

    def lock_for_payroll(self, employee_id):
        self.log.append(("lock", employee_id))
        return employee_id == 1


class FakeAttendanceRepo:
    def __init__(self, records=()):
        self._records = list(records)
        self.calls = []

    def list_attendance(self, *, employee_id, start_date, end_date):
        self.calls.append((employee_id, start_date, end_date))
        return [r for r in self._records if r.employee_id == employee_id and start_date <= r.work_date <= end_date]


class FakeSalesRepo:
    def __init__(self, sales=()):
        self._sales = list(sales)
        self.calls = []

    def list_sales(self, *, employee_id, start, end):
        self.calls.append((employee_id, start, end))
        return [s for s in self._sales if s.employee_id == employee_id and start <= s.occurred_at < end]


class FakeSalariesRepo:
    def __init__(self, log=None):
        self._next_id = 1
        self.rows: dict[int, SalaryRecord] = {}
        self.log = log if log is not None else []

    def get(self, salary_id):
        return self.rows.get(int(salary_id))

    def create(self, *, employee_id, period_start, period_end, pay_date, amount, breakdown, status=SalaryStatus.PAID, correction_of=None):
        sid = self._next_id
        self._next_id += 1
        self.rows[sid] = SalaryRecord(
            salary_id=sid,
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            amount=amount,
            status=status,
            pay_date=pay_date,
            breakdown=breakdown,
            correction_of=correction_of,
        )
        return sid

    def transition_status(self, salary_id, *, from_status, to_status):
        if self.rows[salary_id].status != from_status:
            return False
        self.rows[salary_id] = replace(self.rows[salary_id], status=to_status)
        return True

    def find_paid_for_period(self, *, employee_id, period_start, period_end):
        self.log.append(("find_paid", employee_id))
        for row in self.rows.values():
            if (
                row.employee_id == employee_id
                and row.period_start == period_start
                and row.period_end == period_end
                and row.status == SalaryStatus.PAID
            ):
                return row
        return None


class FakeAuditRepo:
    def __init__(self):
        self.entries = []

    def record(self, *, salary_id, action, old_value, new_value, changed_by):
        entry = SalaryAuditEntry(
            audit_id=len(self.entries) + 1,
            salary_id=salary_id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
            changed_at=datetime(2025, 4, 5, 9, len(self.entries)),
        )
        self.entries.append(entry)
        return entry.audit_id

    def list_for_salaries(self, salary_ids):
        return [e for e in self.entries if e.salary_id in salary_ids]


def _service(*, attendance=(), sales=(), salaries=None, employees=None, **kwargs):
    return PayrollService(
        employees or FakeEmployeesRepo(),
        FakeAttendanceRepo(attendance),
        FakeSalesRepo(sales),
        salaries or FakeSalariesRepo(),
        **kwargs,
    )


FULL_MONTH = PayrollOverrides(total_worked_hours=Decimal("160"), absent_days=0)


def test_compute_breakdown_gathers_period_inputs():
    sales = [
        SaleEvent(1, 1, 101, 2, datetime(2025, 3, 31, 18, 0), Decimal("400")),
        SaleEvent(2, 1, 101, 2, datetime(2025, 4, 1, 9, 0), Decimal("400")),
        SaleEvent(3, 2, 101, 2, datetime(2025, 3, 5, 9, 0), Decimal("400")),
    ]
    attendance = [AttendanceRecord(1, date(2025, 3, 3), Decimal("8"))]
    service = _service(attendance=attendance, sales=sales)

    result = service.compute_breakdown(employee_id=1, period_start=MARCH_START, period_end=MARCH_END)

    assert result.breakdown.sales_total == Decimal("400.00")
    assert result.breakdown.total_worked_hours == Decimal("8.00")
    # 21 working days in March 2025, one attended
    assert result.breakdown.absent_days == 20
    assert service._sales.calls == [(1, datetime(2025, 3, 1), datetime(2025, 4, 1))]
    assert service._attendance.calls == [(1, MARCH_START, MARCH_END)]


def test_compute_breakdown_unknown_employee():
    with pytest.raises(NotFoundError):
        _service().compute_breakdown(employee_id=99, period_start=MARCH_START, period_end=MARCH_END)


def test_compute_breakdown_reversed_period():
    with pytest.raises(ValidationError):
        _service().compute_breakdown(employee_id=1, period_start=MARCH_END, period_end=MARCH_START)


def test_compute_breakdown_uses_default_config():
    service = _service(default_config=PayrollConfig(base_salary=Decimal("3000")))

    result = service.compute_breakdown(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH
    )

    assert result.amount == Decimal("3000.00")


def test_process_salary_persists_amount_and_breakdown():
    salaries = FakeSalariesRepo()
    service = _service(salaries=salaries)

    record = service.process_salary(
        employee_id=1,
        period_start=MARCH_START,
        period_end=MARCH_END,
        pay_date=date(2025, 4, 5),
        overrides=FULL_MONTH,
    )

    assert record.amount == Decimal("2000.00")
    assert record.status == SalaryStatus.PAID
    assert record.pay_date == date(2025, 4, 5)
    assert record.breakdown.base_salary == Decimal("2000.00")
    assert record.amount == record.breakdown.expected_amount()


def test_process_salary_twice_for_same_period_conflicts():
    service = _service()
    service.process_salary(employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH)

    with pytest.raises(ConflictError, match="already paid"):
        service.process_salary(employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH)


def test_process_salary_runs_inside_unit_of_work():
    log = []

    @contextmanager
    def unit_of_work():
        log.append("begin")
        yield
        log.append("commit")

    _service(unit_of_work=unit_of_work).process_salary(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH
    )

    assert log == ["begin", "commit"]


def test_correct_salary_supersedes_original():
    salaries = FakeSalariesRepo()
    service = _service(salaries=salaries)
    original = service.process_salary(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH
    )

    corrected = service.correct_salary(
        salary_id=original.salary_id,
        overrides=PayrollOverrides(total_worked_hours=Decimal("170"), absent_days=0),
    )

    assert corrected.salary_id != original.salary_id
    assert corrected.correction_of == original.salary_id
    assert corrected.amount == Decimal("2200.00")
    assert salaries.get(original.salary_id).status == SalaryStatus.CORRECTED

    with pytest.raises(ConflictError):
        service.correct_salary(salary_id=original.salary_id)


def test_correct_salary_needs_period():
    salaries = FakeSalariesRepo()
    sid = salaries.create(
        employee_id=1,
        period_start=None,
        period_end=None,
        pay_date=date(2024, 12, 28),
        amount=Decimal("5000"),
        breakdown=None,
    )

    with pytest.raises(ValidationError):
        _service(salaries=salaries).correct_salary(salary_id=sid)


def test_mismatched_calculator_is_refused():
    class SkewedCalculator(StandardPayrollCalculator):
        def calculate(self, inputs, config):
            result = super().calculate(inputs, config)
            return replace(result, amount=result.amount + Decimal("1"))

    salaries = FakeSalariesRepo()
    service = _service(salaries=salaries, calculator=SkewedCalculator())

    with pytest.raises(ComputationError):
        service.process_salary(employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH)
    assert salaries.rows == {}


def test_salary_view_flattens_breakdown():
    service = _service()
    record = service.process_salary(
        employee_id=1,
        period_start=MARCH_START,
        period_end=MARCH_END,
        pay_date=date(2025, 4, 5),
        overrides=FULL_MONTH,
    )

    view = service.get_salary_view(record.salary_id)

    assert view["id"] == record.salary_id
    assert view["amount"] == 2000.0
    assert view["baseSalary"] == 2000.0
    assert view["absentDays"] == 0
    assert view["startDate"] == "2025-03-01"
    assert view["status"] == "paid"


def test_get_salary_unknown():
    with pytest.raises(NotFoundError):
        _service().get_salary(42)


def test_process_salary_locks_employee_before_checking_period():
    log = []
    service = _service(employees=FakeEmployeesRepo(log), salaries=FakeSalariesRepo(log))

    service.process_salary(employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH)

    assert log == [("lock", 1), ("find_paid", 1)]


def test_correction_that_loses_a_race_conflicts_without_writing():
    class AlreadyCorrectedElsewhere(FakeSalariesRepo):
        def transition_status(self, salary_id, *, from_status, to_status):
            # another request committed its correction after our status read
            return False

    salaries = AlreadyCorrectedElsewhere()
    service = _service(salaries=salaries)
    original = service.process_salary(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH
    )

    with pytest.raises(ConflictError, match="already been corrected"):
        service.correct_salary(salary_id=original.salary_id, overrides=FULL_MONTH)
    assert list(salaries.rows) == [original.salary_id]


def test_process_and_correct_write_audit_entries():
    audit = FakeAuditRepo()
    service = _service(audit=audit)
    original = service.process_salary(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH, changed_by="hr@example.com"
    )
    corrected = service.correct_salary(
        salary_id=original.salary_id,
        overrides=PayrollOverrides(total_worked_hours=Decimal("170"), absent_days=0),
    )

    create, correct = audit.entries
    assert create.action == SalaryAuditAction.CREATE
    assert create.salary_id == original.salary_id
    assert create.old_value is None
    assert create.new_value["amount"] == 2000.0
    assert create.changed_by == "hr@example.com"

    assert correct.action == SalaryAuditAction.CORRECT
    assert correct.salary_id == corrected.salary_id
    assert correct.old_value["id"] == original.salary_id
    assert correct.old_value["status"] == "paid"
    assert correct.new_value["amount"] == 2200.0
    assert correct.changed_by == "admin"


def test_correction_chain_and_audit_trail():
    audit = FakeAuditRepo()
    service = _service(audit=audit)
    first = service.process_salary(
        employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH
    )
    second = service.correct_salary(salary_id=first.salary_id, overrides=FULL_MONTH)
    third = service.correct_salary(salary_id=second.salary_id, overrides=FULL_MONTH)

    chain = service.correction_chain(third.salary_id)

    assert [r.salary_id for r in chain] == [third.salary_id, second.salary_id, first.salary_id]
    assert [e.action for e in service.audit_trail(chain)] == [
        SalaryAuditAction.CREATE,
        SalaryAuditAction.CORRECT,
        SalaryAuditAction.CORRECT,
    ]
    assert service.audit_trail(service.correction_chain(first.salary_id))[0].salary_id == first.salary_id


def test_audit_trail_is_empty_without_audit_repository():
    service = _service()
    record = service.process_salary(employee_id=1, period_start=MARCH_START, period_end=MARCH_END, overrides=FULL_MONTH)

    assert service.audit_trail(service.correction_chain(record.salary_id)) == []
