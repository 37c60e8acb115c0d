from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from ..core.enums import SalaryAuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, load_json
from .model import SalaryAuditEntry
from .repository import SalaryAuditRepository


def _dump(value: Optional[dict[str, Any]]) -> Optional[str]:
    return None if value is None else json.dumps(value)


class MySQLSalaryAuditRepository(SalaryAuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(
        self,
        *,
        salary_id: int,
        action: SalaryAuditAction,
        old_value: Optional[dict[str, Any]],
        new_value: Optional[dict[str, Any]],
        changed_by: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salary_audit_log(salary_id, action, old_value, new_value, changed_by)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(salary_id), action.value, _dump(old_value), _dump(new_value), changed_by),
            )
            return int(cur.lastrowid)

    def list_for_salaries(self, salary_ids: Sequence[int]) -> Sequence[SalaryAuditEntry]:
        if not salary_ids:
            return []
        placeholders = ",".join(["%s"] * len(salary_ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT audit_id, salary_id, action, old_value, new_value, changed_by, changed_at
                FROM salary_audit_log
                WHERE salary_id IN ({placeholders})
                ORDER BY changed_at ASC, audit_id ASC
                """,
                tuple(int(s) for s in salary_ids),
            )
            return [
                SalaryAuditEntry(
                    audit_id=int(r["audit_id"]),
                    salary_id=int(r["salary_id"]),
                    action=SalaryAuditAction(r["action"]),
                    old_value=load_json(r.get("old_value")),
                    new_value=load_json(r.get("new_value")),
                    changed_by=r["changed_by"],
                    changed_at=r["changed_at"],
                )
                for r in fetchall(cur)
            ]
