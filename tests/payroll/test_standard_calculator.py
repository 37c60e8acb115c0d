from datetime import date, datetime
from decimal import Decimal

import pytest

from src.workforce_system.workforce_system.attendance.model import AttendanceRecord
from src.workforce_system.workforce_system.core.enums import SalesBasis
from src.workforce_system.workforce_system.core.exceptions import ComputationError, ValidationError
from src.workforce_system.workforce_system.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.workforce_system.workforce_system.payroll.model import PayrollConfig, PayrollInputs, PayrollOverrides
from src.workforce_system.workforce_system.sales.model import SaleEvent

# Mon 2025-03-03 .. Sun 2025-03-09: five working days
WEEK_START = date(2025, 3, 3)
WEEK_END = date(2025, 3, 9)


def _attendance():
    return (
        AttendanceRecord(employee_id=1, work_date=date(2025, 3, 3), hours_worked=Decimal("8")),
        AttendanceRecord(employee_id=1, work_date=date(2025, 3, 4), hours_worked=Decimal("8")),
        AttendanceRecord(employee_id=1, work_date=date(2025, 3, 5), hours_worked=Decimal("0")),
        AttendanceRecord(employee_id=1, work_date=date(2025, 3, 6), hours_worked=Decimal("9.5")),
        # Friday missing -> absent; Saturday is not a working day but hours still count
        AttendanceRecord(employee_id=1, work_date=date(2025, 3, 8), hours_worked=Decimal("0")),
    )


def _sales():
    return (
        SaleEvent(1, 1, 101, 3, datetime(2025, 3, 4, 10, 0), Decimal("1000")),
        SaleEvent(2, 1, 102, 4, datetime(2025, 3, 9, 23, 59), Decimal("250.50")),
        SaleEvent(3, 1, 101, 9, datetime(2025, 3, 10, 0, 0), Decimal("999")),
    )


def _inputs(**kwargs):
    kwargs.setdefault("attendance", _attendance())
    kwargs.setdefault("sales", _sales())
    return PayrollInputs(employee_id=1, period_start=WEEK_START, period_end=WEEK_END, **kwargs)


def _config(**kwargs):
    kwargs.setdefault("standard_hours", Decimal("20"))
    kwargs.setdefault("hourly_rate", Decimal("10"))
    return PayrollConfig(**kwargs)


def test_breakdown_components():
    result = StandardPayrollCalculator().calculate(_inputs(), _config())
    b = result.breakdown

    assert b.base_salary == Decimal("200.00")
    assert b.total_worked_hours == Decimal("25.50")
    assert b.overtime_hours == Decimal("5.50")
    assert b.overtime_pay == Decimal("110.00")
    assert b.undertime_hours == Decimal("0")
    assert b.absent_days == 1
    assert b.absence_deduction == Decimal("50.00")
    assert b.sales_total == Decimal("1250.50")
    # 62.525 rounds half up
    assert b.sales_bonus == Decimal("62.53")
    assert result.amount == Decimal("322.53")
    assert result.amount == b.expected_amount()
    assert b.clamped is False


def test_zero_hour_day_counts_as_present():
    attendance = tuple(r for r in _attendance() if r.work_date != date(2025, 3, 5))

    result = StandardPayrollCalculator().calculate(_inputs(attendance=attendance), _config())

    assert result.breakdown.absent_days == 2


def test_absent_days_skip_weekends():
    result = StandardPayrollCalculator().calculate(_inputs(attendance=(), sales=()), _config())

    assert result.breakdown.absent_days == 5


def test_undertime_is_deducted():
    result = StandardPayrollCalculator().calculate(_inputs(sales=()), _config(standard_hours=Decimal("30")))
    b = result.breakdown

    assert b.undertime_hours == Decimal("4.50")
    assert b.undertime_deduction == Decimal("67.50")
    assert b.overtime_pay == Decimal("0.00")
    # 300 - 67.50 - 50
    assert result.amount == Decimal("182.50")


def test_negative_total_is_clamped_to_zero():
    result = StandardPayrollCalculator().calculate(_inputs(attendance=(), sales=()), PayrollConfig())

    assert result.breakdown.gross_total() == Decimal("-650.00")
    assert result.breakdown.clamped is True
    assert result.amount == Decimal("0.00")
    assert result.amount == result.breakdown.expected_amount()


def test_default_base_salary_is_standard_hours_times_rate():
    overrides = PayrollOverrides(total_worked_hours=Decimal("160"), absent_days=0, sales_total=Decimal("0"))

    result = StandardPayrollCalculator().calculate(_inputs(overrides=overrides), PayrollConfig())

    assert result.breakdown.base_salary == Decimal("2000.00")
    assert result.amount == Decimal("2000.00")


def test_overrides_replace_gathered_figures():
    overrides = PayrollOverrides(total_worked_hours=Decimal("170"), absent_days=2, sales_total=Decimal("400"))

    result = StandardPayrollCalculator().calculate(
        _inputs(overrides=overrides), PayrollConfig(base_salary=Decimal("3000"))
    )
    b = result.breakdown

    assert b.overtime_pay == Decimal("200.00")
    assert b.absence_deduction == Decimal("100.00")
    assert b.sales_bonus == Decimal("20.00")
    assert result.amount == Decimal("3120.00")


def test_sales_by_quantity():
    result = StandardPayrollCalculator().calculate(_inputs(), _config(sales_basis=SalesBasis.QUANTITY))

    assert result.breakdown.sales_total == Decimal("7.00")
    assert result.breakdown.sales_bonus == Decimal("0.35")


def test_same_inputs_same_breakdown():
    calc = StandardPayrollCalculator()

    assert calc.calculate(_inputs(), _config()) == calc.calculate(_inputs(), _config())


def test_reversed_period_is_rejected():
    inputs = PayrollInputs(employee_id=1, period_start=WEEK_END, period_end=WEEK_START)

    with pytest.raises(ValidationError):
        StandardPayrollCalculator().calculate(inputs, _config())


@pytest.mark.parametrize(
    "config",
    [
        PayrollConfig(bonus_percent=Decimal("150")),
        PayrollConfig(overtime_rate=Decimal("-1")),
        PayrollConfig(working_weekdays=(0, 7)),
    ],
)
def test_invalid_config_is_rejected(config):
    with pytest.raises(ValidationError):
        StandardPayrollCalculator().calculate(_inputs(), config)


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", float("nan"), 1e30, "1e30"])
def test_non_finite_or_huge_request_numbers_are_rejected(value):
    with pytest.raises(ValidationError):
        PayrollConfig().merged({"bonusPercent": value})
    with pytest.raises(ValidationError):
        PayrollOverrides.from_request({"salesTotal": value})


def test_huge_absent_days_is_rejected():
    with pytest.raises(ValidationError):
        PayrollOverrides.from_request({"absentDays": 10**30})


def test_salary_too_large_for_storage_is_rejected():
    config = PayrollConfig().merged({"standardHours": 0, "overtimeRate": 9999})
    overrides = PayrollOverrides.from_request({"totalWorkedHours": "9999999999"})

    with pytest.raises(ComputationError):
        StandardPayrollCalculator().calculate(_inputs(overrides=overrides), config)
