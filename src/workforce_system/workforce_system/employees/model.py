from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee owned by the HR screens."""

    employee_id: int
    full_name: str
    is_active: bool = True
