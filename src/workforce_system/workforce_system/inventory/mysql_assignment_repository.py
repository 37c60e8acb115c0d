from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import day_window
from ..core.enums import OPEN_ASSIGNMENT_STATUSES, AssignmentStatus
from ..core.exceptions import PersistenceError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Assignment
from .repository import AssignmentRepository

_COLUMNS = "assignment_id, employee_id, product_id, assigned_at, quantity, status, shortfall_quantity"


def _to_assignment(r: dict) -> Assignment:
    return Assignment(
        assignment_id=int(r["assignment_id"]),
        employee_id=int(r["employee_id"]),
        product_id=int(r["product_id"]),
        assigned_at=r["assigned_at"],
        quantity=int(r["quantity"]),
        status=AssignmentStatus(r["status"]),
        shortfall_quantity=int(r.get("shortfall_quantity") or 0),
    )


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_open_assignments(self, cohort_date: date) -> Sequence[Assignment]:
        start, end = day_window(cohort_date)
        statuses = sorted(s.value for s in OPEN_ASSIGNMENT_STATUSES)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employee_products
                WHERE assigned_at >= %s AND assigned_at < %s
                  AND status IN (%s, %s)
                ORDER BY assignment_id ASC
                """,
                (start, end, *statuses),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def get(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employee_products WHERE assignment_id=%s", (int(assignment_id),))
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def get_for_update(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employee_products WHERE assignment_id=%s FOR UPDATE",
                (int(assignment_id),),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def create(
        self,
        *,
        employee_id: int,
        product_id: int,
        assigned_at: datetime,
        quantity: int,
    ) -> int:
        if int(quantity) < 0:
            raise ValidationError("Quantity must be a non-negative number")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_products(employee_id, product_id, assigned_at, quantity, status, shortfall_quantity)
                VALUES(%s,%s,%s,%s,%s,0)
                """,
                (int(employee_id), int(product_id), assigned_at, int(quantity), AssignmentStatus.ASSIGNED.value),
            )
            return int(cur.lastrowid)

    def update_assignment(self, assignment_id: int, *, status: AssignmentStatus, shortfall_quantity: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_products
                SET status=%s, shortfall_quantity=%s
                WHERE assignment_id=%s
                """,
                (status.value, int(shortfall_quantity), int(assignment_id)),
            )
            # rowcount is 0 when the values were already identical; check existence instead.
            if cur.rowcount == 0:
                cur.execute("SELECT 1 AS found FROM employee_products WHERE assignment_id=%s", (int(assignment_id),))
                if not fetchone(cur):
                    raise PersistenceError(f"Assignment {assignment_id} not found for update")
