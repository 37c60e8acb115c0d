from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def list_attendance(self, *, employee_id: int, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        """Records with `work_date` in the inclusive range [start_date, end_date]."""

        raise NotImplementedError
