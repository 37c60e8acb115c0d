from __future__ import annotations

from enum import Enum


class AssignmentStatus(str, Enum):
    """Lifecycle of a product assignment, stored lowercase in the database."""

    ASSIGNED = "assigned"
    PARTIALLY_SOLD = "partially_sold"
    SOLD = "sold"
    EXPIRED = "expired"

    @property
    def is_open(self) -> bool:
        return self in OPEN_ASSIGNMENT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not self.is_open


OPEN_ASSIGNMENT_STATUSES = frozenset({AssignmentStatus.ASSIGNED, AssignmentStatus.PARTIALLY_SOLD})


class SalaryStatus(str, Enum):
    PAID = "paid"
    CORRECTED = "corrected"


class SalaryAuditAction(str, Enum):
    CREATE = "create"
    CORRECT = "correct"


class SalesBasis(str, Enum):
    """What `sales_total` adds up: sale value or sold units."""

    VALUE = "value"
    QUANTITY = "quantity"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
