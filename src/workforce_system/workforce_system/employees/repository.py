from __future__ import annotations

from typing import Optional, Protocol

from .model import Employee


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def lock_for_payroll(self, employee_id: int) -> bool:
        """Row-lock the employee for the rest of the open transaction.

        Serializes salary writes for one employee; False if the employee is gone.
        """

        raise NotImplementedError
