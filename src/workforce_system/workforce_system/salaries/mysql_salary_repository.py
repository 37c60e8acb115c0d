from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import SalaryStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, load_json
from ..payroll.model import PayrollBreakdown, is_missing_breakdown
from .model import SalaryRecord
from .repository import SalaryRepository

_COLUMNS = "salary_id, employee_id, period_start, period_end, pay_date, amount, status, breakdown, correction_of"

# JSON_LENGTH('{}') = 0 catches rows saved with an empty object.
_MISSING_BREAKDOWN = "(breakdown IS NULL OR JSON_TYPE(breakdown) = 'NULL' OR JSON_LENGTH(breakdown) = 0)"


def _to_record(r: dict) -> SalaryRecord:
    raw = load_json(r.get("breakdown"))
    return SalaryRecord(
        salary_id=int(r["salary_id"]),
        employee_id=int(r["employee_id"]),
        period_start=r.get("period_start"),
        period_end=r.get("period_end"),
        pay_date=r["pay_date"],
        amount=as_decimal(r["amount"]),
        status=SalaryStatus(r["status"]),
        breakdown=None if is_missing_breakdown(raw) else PayrollBreakdown.from_dict(raw),
        correction_of=r.get("correction_of"),
    )


class MySQLSalaryRepository(SalaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, salary_id: int) -> Optional[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM salaries WHERE salary_id=%s", (int(salary_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(
        self,
        *,
        employee_id: int,
        period_start: date,
        period_end: date,
        pay_date: date,
        amount: Decimal,
        breakdown: PayrollBreakdown,
        status: SalaryStatus = SalaryStatus.PAID,
        correction_of: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salaries(employee_id, period_start, period_end, pay_date, amount, status, breakdown, correction_of)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(employee_id),
                    period_start,
                    period_end,
                    pay_date,
                    amount,
                    status.value,
                    json.dumps(breakdown.to_dict()),
                    correction_of,
                ),
            )
            return int(cur.lastrowid)

    def transition_status(self, salary_id: int, *, from_status: SalaryStatus, to_status: SalaryStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE salaries SET status=%s WHERE salary_id=%s AND status=%s",
                (to_status.value, int(salary_id), from_status.value),
            )
            return cur.rowcount > 0

    def find_paid_for_period(self, *, employee_id: int, period_start: date, period_end: date) -> Optional[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM salaries
                WHERE employee_id=%s AND status=%s
                  AND period_start <= %s AND period_end >= %s
                ORDER BY salary_id DESC
                LIMIT 1
                FOR UPDATE
                """,
                (int(employee_id), SalaryStatus.PAID.value, period_end, period_start),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_missing_breakdown(self) -> Sequence[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM salaries WHERE {_MISSING_BREAKDOWN} ORDER BY salary_id ASC")
            return [_to_record(r) for r in fetchall(cur)]

    def set_breakdown_if_missing(self, salary_id: int, *, breakdown: PayrollBreakdown) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE salaries SET breakdown=%s WHERE salary_id=%s AND {_MISSING_BREAKDOWN}",
                (json.dumps(breakdown.to_dict()), int(salary_id)),
            )
            return cur.rowcount > 0

    def list_missing_period(self) -> Sequence[SalaryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM salaries WHERE period_start IS NULL OR period_end IS NULL ORDER BY salary_id ASC"
            )
            return [_to_record(r) for r in fetchall(cur)]

    def set_period_if_missing(self, salary_id: int, *, period_start: date, period_end: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE salaries
                SET period_start=%s, period_end=%s
                WHERE salary_id=%s AND (period_start IS NULL OR period_end IS NULL)
                """,
                (period_start, period_end, int(salary_id)),
            )
            return cur.rowcount > 0
