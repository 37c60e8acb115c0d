from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ...common.datetime_utils import expected_working_days
from ...common.validators import require_date_range
from ...core.constants import HOURS_QUANT, MAX_MONEY, MONEY_QUANT
from ...core.enums import SalesBasis
from ...core.exceptions import ComputationError
from ..model import ZERO, PayrollBreakdown, PayrollConfig, PayrollInputs, PayrollResult
from .base import PayrollCalculator


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _hours(value: Decimal) -> Decimal:
    return value.quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule:

    base + sales_total * bonus% + overtime_hours * overtime_rate
    - undertime_hours * undertime_rate - absent_days * absence_rate, not below 0.
    """

    def calculate(self, inputs: PayrollInputs, config: PayrollConfig) -> PayrollResult:
        require_date_range(inputs.period_start, inputs.period_end)
        config.validate()
        inputs.overrides.validate()

        start, end = inputs.period_start, inputs.period_end
        attendance = [r for r in inputs.attendance if start <= r.work_date <= end]

        worked = inputs.overrides.total_worked_hours
        if worked is None:
            worked = sum((r.hours_worked for r in attendance), ZERO)
        worked = _hours(worked)

        absent_days = inputs.overrides.absent_days
        if absent_days is None:
            present = {r.work_date for r in attendance}
            absent_days = sum(1 for d in expected_working_days(start, end, config.working_weekdays) if d not in present)

        sales_total = inputs.overrides.sales_total
        if sales_total is None:
            in_period = [s for s in inputs.sales if start <= s.occurred_at.date() <= end]
            if config.sales_basis == SalesBasis.QUANTITY:
                sales_total = Decimal(sum(s.quantity for s in in_period))
            else:
                sales_total = sum((s.amount for s in in_period), ZERO)
        sales_total = _money(sales_total)

        standard = config.standard_hours
        overtime_hours = max(worked - standard, ZERO)
        undertime_hours = max(standard - worked, ZERO)

        base_salary = _money(config.resolved_base_salary())
        sales_bonus = _money(sales_total * config.bonus_percent / Decimal(100))
        overtime_pay = _money(overtime_hours * config.overtime_rate)
        undertime_deduction = _money(undertime_hours * config.undertime_rate)
        absence_deduction = _money(Decimal(absent_days) * config.absence_rate)

        figures = (sales_total, base_salary, sales_bonus, overtime_pay, undertime_deduction, absence_deduction)
        if any(abs(v) > MAX_MONEY for v in figures):
            raise ComputationError("Salary figures are out of range")
        gross = base_salary + sales_bonus + overtime_pay - undertime_deduction - absence_deduction
        if gross > MAX_MONEY:
            raise ComputationError("Salary amount is out of range")
        clamped = gross < ZERO

        breakdown = PayrollBreakdown(
            base_salary=base_salary,
            sales_total=sales_total,
            bonus_percent=config.bonus_percent,
            total_worked_hours=worked,
            overtime_rate=config.overtime_rate,
            undertime_deduction=undertime_deduction,
            absence_deduction=absence_deduction,
            absent_days=int(absent_days),
            standard_hours=standard,
            overtime_hours=_hours(overtime_hours),
            overtime_pay=overtime_pay,
            undertime_hours=_hours(undertime_hours),
            sales_bonus=sales_bonus,
            clamped=clamped,
        )
        return PayrollResult(
            employee_id=int(inputs.employee_id),
            period_start=start,
            period_end=end,
            amount=_money(max(gross, ZERO)),
            breakdown=breakdown,
        )
