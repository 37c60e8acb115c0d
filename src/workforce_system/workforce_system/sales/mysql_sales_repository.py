from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import SaleEvent
from .repository import SalesRepository


class MySQLSalesRepository(SalesRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def sum_sales(self, *, employee_id: int, product_id: int, start: datetime, end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COALESCE(SUM(quantity), 0) AS sold
                FROM sales
                WHERE employee_id=%s AND product_id=%s
                  AND occurred_at >= %s AND occurred_at < %s
                """,
                (int(employee_id), int(product_id), start, end),
            )
            r = fetchone(cur)
            return int(r["sold"]) if r else 0

    def list_sales(self, *, employee_id: int, start: datetime, end: datetime) -> Sequence[SaleEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT sale_id, employee_id, product_id, quantity, amount, occurred_at
                FROM sales
                WHERE employee_id=%s AND occurred_at >= %s AND occurred_at < %s
                ORDER BY occurred_at ASC, sale_id ASC
                """,
                (int(employee_id), start, end),
            )
            return [
                SaleEvent(
                    sale_id=int(r["sale_id"]),
                    employee_id=int(r["employee_id"]),
                    product_id=int(r["product_id"]),
                    quantity=int(r["quantity"]),
                    amount=as_decimal(r.get("amount")),
                    occurred_at=r["occurred_at"],
                )
                for r in fetchall(cur)
            ]
