from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .common.counter_store import CounterStore, JobLock
from .common.mysql_counter_store import MySQLCounterStore
from .common.mysql_run_ledger import MySQLRunLedger
from .common.rate_limit import RateLimiter
from .common.run_ledger import RunLedger
from .core.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_RECORD_TIMEOUT_SECONDS,
    DEFAULT_RUN_LOCK_TTL_SECONDS,
    DEFAULT_TRIGGER_RATE_LIMIT,
    DEFAULT_TRIGGER_RATE_WINDOW_SECONDS,
)
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .inventory.mysql_assignment_repository import MySQLAssignmentRepository
from .payroll.legacy_repair import LegacyBreakdownRepair
from .payroll.model import PayrollConfig
from .payroll.service import PayrollService
from .reconciliation.engine import ReconciliationEngine
from .reconciliation.factory import ReconciliationStrategyFactory
from .salaries.mysql_salary_audit_repository import MySQLSalaryAuditRepository
from .salaries.mysql_salary_repository import MySQLSalaryRepository
from .sales.mysql_sales_repository import MySQLSalesRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    assignments_repo: MySQLAssignmentRepository
    sales_repo: MySQLSalesRepository
    attendance_repo: MySQLAttendanceRepository
    employees_repo: MySQLEmployeeRepository
    salaries_repo: MySQLSalaryRepository
    salary_audit_repo: MySQLSalaryAuditRepository

    counter_store: CounterStore
    run_ledger: RunLedger
    trigger_limiter: RateLimiter

    reconciliation_engine: ReconciliationEngine
    payroll_service: PayrollService
    legacy_repair: LegacyBreakdownRepair


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection(config)

    assignments_repo = MySQLAssignmentRepository(conn)
    sales_repo = MySQLSalesRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    employees_repo = MySQLEmployeeRepository(conn)
    salaries_repo = MySQLSalaryRepository(conn)
    salary_audit_repo = MySQLSalaryAuditRepository(conn)

    counter_store = MySQLCounterStore(conn)
    run_ledger = MySQLRunLedger(conn)
    job_lock = JobLock(
        counter_store,
        ttl_seconds=getattr(settings, "RUN_LOCK_TTL_SECONDS", DEFAULT_RUN_LOCK_TTL_SECONDS),
    )
    trigger_limiter = RateLimiter(
        counter_store,
        limit=getattr(settings, "TRIGGER_RATE_LIMIT", DEFAULT_TRIGGER_RATE_LIMIT),
        window_seconds=getattr(settings, "TRIGGER_RATE_WINDOW_SECONDS", DEFAULT_TRIGGER_RATE_WINDOW_SECONDS),
    )

    reconciliation_engine = ReconciliationEngine(
        assignments_repo,
        sales_repo,
        strategy_factory=ReconciliationStrategyFactory(),
        job_lock=job_lock,
        run_ledger=run_ledger,
        unit_of_work=conn.transaction,
        max_workers=getattr(settings, "RECONCILIATION_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        record_timeout_seconds=getattr(settings, "RECORD_TIMEOUT_SECONDS", DEFAULT_RECORD_TIMEOUT_SECONDS),
    )
    payroll_service = PayrollService(
        employees_repo,
        attendance_repo,
        sales_repo,
        salaries_repo,
        default_config=PayrollConfig.from_settings(getattr(settings, "PAYROLL", None)),
        audit=salary_audit_repo,
        unit_of_work=conn.transaction,
    )
    legacy_repair = LegacyBreakdownRepair(salaries_repo, job_lock=job_lock, run_ledger=run_ledger)

    return Container(
        conn=conn,
        assignments_repo=assignments_repo,
        sales_repo=sales_repo,
        attendance_repo=attendance_repo,
        employees_repo=employees_repo,
        salaries_repo=salaries_repo,
        salary_audit_repo=salary_audit_repo,
        counter_store=counter_store,
        run_ledger=run_ledger,
        trigger_limiter=trigger_limiter,
        reconciliation_engine=reconciliation_engine,
        payroll_service=payroll_service,
        legacy_repair=legacy_repair,
    )
