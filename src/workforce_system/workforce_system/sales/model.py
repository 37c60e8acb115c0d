from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class SaleEvent:
    """Immutable sale: `quantity` units of a product sold by an employee, worth `amount`."""

    sale_id: int
    employee_id: int
    product_id: int
    quantity: int
    occurred_at: datetime
    amount: Decimal = Decimal("0")
