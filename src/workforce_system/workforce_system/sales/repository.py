from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import SaleEvent


class SalesRepository(Protocol):
    """Read-only view of the sales event log. Ranges are half-open [start, end)."""

    def sum_sales(self, *, employee_id: int, product_id: int, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    def list_sales(self, *, employee_id: int, start: datetime, end: datetime) -> Sequence[SaleEvent]:
        raise NotImplementedError
