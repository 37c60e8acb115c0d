from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RunStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, load_json
from .run_ledger import JobRun, RunLedger


class MySQLRunLedger(RunLedger):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def start(self, *, job_name: str, run_key: str, started_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO job_runs(job_name, run_key, status, started_at) VALUES(%s,%s,%s,%s)",
                (job_name, run_key, RunStatus.RUNNING.value, started_at),
            )
            return int(cur.lastrowid)

    def finish(self, run_id: int, *, summary: dict, finished_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE job_runs SET status=%s, summary=%s, finished_at=%s WHERE run_id=%s",
                (RunStatus.COMPLETED.value, json.dumps(summary), finished_at, int(run_id)),
            )

    def fail(self, run_id: int, *, error: str, finished_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE job_runs SET status=%s, error=%s, finished_at=%s WHERE run_id=%s",
                (RunStatus.FAILED.value, error[:2000], finished_at, int(run_id)),
            )

    def list_runs(self, *, job_name: str, run_key: Optional[str] = None, limit: int = 20) -> Sequence[JobRun]:
        clauses = ["job_name=%s"]
        params: list[object] = [job_name]
        if run_key is not None:
            clauses.append("run_key=%s")
            params.append(run_key)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT run_id, job_name, run_key, status, started_at, finished_at, summary, error
                FROM job_runs
                WHERE {" AND ".join(clauses)}
                ORDER BY run_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                JobRun(
                    run_id=int(r["run_id"]),
                    job_name=r["job_name"],
                    run_key=r["run_key"],
                    status=RunStatus(r["status"]),
                    started_at=r["started_at"],
                    finished_at=r.get("finished_at"),
                    summary=load_json(r.get("summary")),
                    error=r.get("error"),
                )
                for r in fetchall(cur)
            ]
