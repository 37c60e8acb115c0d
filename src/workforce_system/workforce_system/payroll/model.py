from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.validators import require_non_negative, require_percent, to_decimal
from ..core.constants import (
    DEFAULT_ABSENCE_RATE,
    DEFAULT_BONUS_PERCENT,
    DEFAULT_HOURLY_RATE,
    DEFAULT_OVERTIME_RATE,
    DEFAULT_STANDARD_HOURS,
    DEFAULT_UNDERTIME_RATE,
    DEFAULT_WORKING_WEEKDAYS,
    MAX_MONEY,
    MONEY_QUANT,
)
from ..core.enums import SalesBasis
from ..core.exceptions import ValidationError
from ..sales.model import SaleEvent

ZERO = Decimal("0")

# Field name -> key in the stored/served JSON. The first eight are the keys
# legacy records and API consumers know; the rest are derived figures.
_BREAKDOWN_KEYS = {
    "base_salary": "baseSalary",
    "sales_total": "salesTotal",
    "bonus_percent": "bonusPercent",
    "total_worked_hours": "totalWorkedHours",
    "overtime_rate": "overtimeRate",
    "undertime_deduction": "undertimeDeduction",
    "absence_deduction": "absenceDeduction",
    "absent_days": "absentDays",
    "standard_hours": "standardHours",
    "overtime_hours": "overtimeHours",
    "overtime_pay": "overtimePay",
    "undertime_hours": "undertimeHours",
    "sales_bonus": "salesBonus",
    "clamped": "clamped",
}


@dataclass(frozen=True)
class PayrollBreakdown:
    """Structured decomposition of a salary amount.

    `undertime_deduction` and `absence_deduction` are money amounts;
    `overtime_rate` is the per-hour rate that produced `overtime_pay`.
    """

    base_salary: Decimal = ZERO
    sales_total: Decimal = ZERO
    bonus_percent: Decimal = ZERO
    total_worked_hours: Decimal = ZERO
    overtime_rate: Decimal = ZERO
    undertime_deduction: Decimal = ZERO
    absence_deduction: Decimal = ZERO
    absent_days: int = 0
    standard_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    overtime_pay: Decimal = ZERO
    undertime_hours: Decimal = ZERO
    sales_bonus: Decimal = ZERO
    clamped: bool = False

    @classmethod
    def legacy(cls, amount: Decimal) -> "PayrollBreakdown":
        """Breakdown for a historical record that only knows its amount."""
        return cls(base_salary=amount)

    def gross_total(self) -> Decimal:
        return (
            self.base_salary
            + self.sales_bonus
            + self.overtime_pay
            - self.undertime_deduction
            - self.absence_deduction
        )

    def expected_amount(self) -> Decimal:
        return max(self.gross_total(), ZERO).quantize(MONEY_QUANT)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = float(value)
            out[_BREAKDOWN_KEYS[f.name]] = value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PayrollBreakdown":
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = _BREAKDOWN_KEYS[f.name]
            if key not in data or data[key] is None:
                continue
            if f.name == "absent_days":
                kwargs[f.name] = int(data[key])
            elif f.name == "clamped":
                kwargs[f.name] = bool(data[key])
            else:
                kwargs[f.name] = to_decimal(data[key], key)
        return cls(**kwargs)


def is_missing_breakdown(value: Optional[Mapping[str, Any]]) -> bool:
    return value is None or len(value) == 0


@dataclass(frozen=True)
class PayrollConfig:
    """Rates and rules supplied by the caller for one computation."""

    base_salary: Optional[Decimal] = None
    standard_hours: Decimal = DEFAULT_STANDARD_HOURS
    hourly_rate: Decimal = DEFAULT_HOURLY_RATE
    overtime_rate: Decimal = DEFAULT_OVERTIME_RATE
    undertime_rate: Decimal = DEFAULT_UNDERTIME_RATE
    absence_rate: Decimal = DEFAULT_ABSENCE_RATE
    bonus_percent: Decimal = DEFAULT_BONUS_PERCENT
    working_weekdays: tuple[int, ...] = DEFAULT_WORKING_WEEKDAYS
    sales_basis: SalesBasis = SalesBasis.VALUE

    def resolved_base_salary(self) -> Decimal:
        if self.base_salary is not None:
            return self.base_salary
        return self.standard_hours * self.hourly_rate

    def validate(self) -> "PayrollConfig":
        if self.base_salary is not None:
            require_non_negative(self.base_salary, "Base salary")
        require_non_negative(self.standard_hours, "Standard hours")
        require_non_negative(self.hourly_rate, "Hourly rate")
        require_non_negative(self.overtime_rate, "Overtime rate")
        require_non_negative(self.undertime_rate, "Undertime deduction")
        require_non_negative(self.absence_rate, "Absence deduction")
        require_percent(self.bonus_percent, "Bonus percent")
        if any(d not in range(7) for d in self.working_weekdays):
            raise ValidationError("Working weekdays must be between 0 (Monday) and 6 (Sunday)")
        return self

    def merged(self, data: Optional[Mapping[str, Any]]) -> "PayrollConfig":
        """Copy with the camelCase request fields that are present replaced."""

        if not data:
            return self
        changes: dict[str, Any] = {}
        mapping = {
            "baseSalary": "base_salary",
            "standardHours": "standard_hours",
            "hourlyRate": "hourly_rate",
            "overtimeRate": "overtime_rate",
            "undertimeDeduction": "undertime_rate",
            "absenceDeduction": "absence_rate",
            "bonusPercent": "bonus_percent",
            # unambiguous names; they win when both spellings are sent
            "undertimeRate": "undertime_rate",
            "absenceRate": "absence_rate",
        }
        for key, attr in mapping.items():
            if data.get(key) is not None:
                changes[attr] = to_decimal(data[key], key)
        if data.get("workingWeekdays") is not None:
            try:
                changes["working_weekdays"] = tuple(int(d) for d in data["workingWeekdays"])
            except (TypeError, ValueError, OverflowError):
                raise ValidationError("Working weekdays must be whole numbers")
        if data.get("salesBasis") is not None:
            try:
                changes["sales_basis"] = SalesBasis(str(data["salesBasis"]).lower())
            except ValueError:
                raise ValidationError("Sales basis must be 'value' or 'quantity'")
        if not changes:
            return self
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(changes)
        return PayrollConfig(**values)

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]]) -> "PayrollConfig":
        return cls().merged(settings)


@dataclass(frozen=True)
class PayrollOverrides:
    """Explicit figures that replace the ones gathered from attendance/sales."""

    sales_total: Optional[Decimal] = None
    total_worked_hours: Optional[Decimal] = None
    absent_days: Optional[int] = None

    @classmethod
    def from_request(cls, data: Optional[Mapping[str, Any]]) -> "PayrollOverrides":
        data = data or {}
        sales_total = to_decimal(data["salesTotal"], "salesTotal") if data.get("salesTotal") is not None else None
        hours = (
            to_decimal(data["totalWorkedHours"], "totalWorkedHours")
            if data.get("totalWorkedHours") is not None
            else None
        )
        absent = None
        if data.get("absentDays") is not None:
            try:
                absent = int(data["absentDays"])
            except (TypeError, ValueError, OverflowError):
                raise ValidationError("absentDays must be a whole number")
        overrides = cls(sales_total=sales_total, total_worked_hours=hours, absent_days=absent)
        overrides.validate()
        return overrides

    def validate(self) -> None:
        if self.sales_total is not None:
            require_non_negative(self.sales_total, "Sales total")
        if self.total_worked_hours is not None:
            require_non_negative(self.total_worked_hours, "Total worked hours")
        if self.absent_days is not None:
            require_non_negative(self.absent_days, "Absent days")
            if self.absent_days > MAX_MONEY:
                raise ValidationError("Absent days is out of range")


@dataclass(frozen=True)
class PayrollInputs:
    employee_id: int
    period_start: date
    period_end: date
    attendance: Sequence[AttendanceRecord] = ()
    sales: Sequence[SaleEvent] = ()
    overrides: PayrollOverrides = field(default_factory=PayrollOverrides)


@dataclass(frozen=True)
class PayrollResult:
    employee_id: int
    period_start: date
    period_end: date
    amount: Decimal
    breakdown: PayrollBreakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "periodStart": self.period_start.isoformat(),
            "periodEnd": self.period_end.isoformat(),
            "amount": float(self.amount),
            **self.breakdown.to_dict(),
        }
