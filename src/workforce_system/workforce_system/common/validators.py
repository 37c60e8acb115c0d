from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from ..core.constants import MAX_MONEY
from ..core.exceptions import ValidationError


def require_date_range(start: date, end: date) -> None:
    if start is None or end is None:
        raise ValidationError("Period start and end are required")
    if start > end:
        raise ValidationError(f"Period start {start.isoformat()} is after period end {end.isoformat()}")


def require_non_negative(value: Decimal | int, field_name: str) -> Decimal | int:
    if value < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return value


def require_percent(value: Decimal, field_name: str) -> Decimal:
    if value < 0 or value > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")
    return value


def to_decimal(value: Any, field_name: str) -> Decimal:
    """Coerce JSON/DB numbers to Decimal without going through float repr.

    NaN, infinities and magnitudes that do not fit a DECIMAL(12, 2) column are
    rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} must be a number")
    if not value.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    if abs(value) > MAX_MONEY:
        raise ValidationError(f"{field_name} is out of range")
    return value
