from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: hours an employee worked on one day."""

    employee_id: int
    work_date: date
    hours_worked: Decimal
