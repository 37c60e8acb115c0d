from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime

import pytest

from src.workforce_system.workforce_system.common.counter_store import InMemoryCounterStore, JobLock
from src.workforce_system.workforce_system.core.enums import AssignmentStatus, RunStatus
from src.workforce_system.workforce_system.core.exceptions import JobAlreadyRunningError, PersistenceError
from src.workforce_system.workforce_system.inventory.model import Assignment
from src.workforce_system.workforce_system.reconciliation.engine import ReconciliationEngine
from src.workforce_system.workforce_system.reconciliation.model import UnitResult
from src.workforce_system.workforce_system.sales.model import SaleEvent

DAY = date(2025, 3, 10)


class FakeAssignmentsRepo:
    def __init__(self, assignments):
        self._rows = {a.assignment_id: a for a in assignments}
        self._lock = threading.Lock()
        self.writes = []

    def find_open_assignments(self, cohort_date):
        with self._lock:
            return [
                a
                for a in sorted(self._rows.values(), key=lambda a: a.assignment_id)
                if a.cohort_date == cohort_date and a.status.is_open
            ]

    def get(self, assignment_id):
        with self._lock:
            return self._rows.get(assignment_id)

    def get_for_update(self, assignment_id):
        return self.get(assignment_id)

    def update_assignment(self, assignment_id, *, status, shortfall_quantity):
        with self._lock:
            self._rows[assignment_id] = replace(
                self._rows[assignment_id], status=status, shortfall_quantity=shortfall_quantity
            )
            self.writes.append(assignment_id)

    def snapshot(self):
        with self._lock:
            return dict(self._rows)


class FakeSalesRepo:
    def __init__(self, sales, *, on_sum=None):
        self._sales = list(sales)
        self._on_sum = on_sum

    def sum_sales(self, *, employee_id, product_id, start, end):
        if self._on_sum:
            self._on_sum(employee_id, product_id)
        return sum(
            s.quantity
            for s in self._sales
            if s.employee_id == employee_id and s.product_id == product_id and start <= s.occurred_at < end
        )


class FakeRunLedger:
    def __init__(self):
        self.runs = {}

    def start(self, *, job_name, run_key, started_at):
        run_id = len(self.runs) + 1
        self.runs[run_id] = {"job_name": job_name, "run_key": run_key, "status": RunStatus.RUNNING}
        return run_id

    def finish(self, run_id, *, summary, finished_at):
        self.runs[run_id].update(status=RunStatus.COMPLETED, summary=summary)

    def fail(self, run_id, *, error, finished_at):
        self.runs[run_id].update(status=RunStatus.FAILED, error=error)

    def list_runs(self, *, job_name, run_key=None, limit=20):
        return []


class FakeMonotonic:
    def __init__(self):
        self.now = 1000.0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


def _assignment(assignment_id, *, product_id, quantity=10, status=AssignmentStatus.ASSIGNED, day=DAY):
    return Assignment(
        assignment_id=assignment_id,
        employee_id=7,
        product_id=product_id,
        assigned_at=datetime.combine(day, datetime.min.time()).replace(hour=8),
        quantity=quantity,
        status=status,
    )


def _sale(sale_id, *, product_id, quantity, when=None):
    return SaleEvent(
        sale_id=sale_id,
        employee_id=7,
        product_id=product_id,
        quantity=quantity,
        occurred_at=when or datetime(2025, 3, 10, 14, 0),
    )


def _engine(assignments, sales, **kwargs):
    kwargs.setdefault("clock", lambda: datetime(2025, 3, 10, 23, 55))
    return ReconciliationEngine(assignments, sales, **kwargs)


def _scenario_repos():
    assignments = FakeAssignmentsRepo(
        [
            _assignment(1, product_id=101),  # A: sold out
            _assignment(2, product_id=102),  # B: partly sold
            _assignment(3, product_id=103),  # C: nothing sold
            _assignment(4, product_id=104),  # D: oversold
        ]
    )
    sales = FakeSalesRepo(
        [
            _sale(1, product_id=101, quantity=6),
            _sale(2, product_id=101, quantity=4),
            _sale(3, product_id=102, quantity=4),
            _sale(4, product_id=104, quantity=12),
            # next day's sale belongs to another cohort
            _sale(5, product_id=103, quantity=3, when=datetime(2025, 3, 11, 0, 0)),
        ]
    )
    return assignments, sales


def test_reconcile_day_settles_each_assignment():
    assignments, sales = _scenario_repos()

    summary = _engine(assignments, sales).reconcile_day(DAY)

    rows = assignments.snapshot()
    assert (rows[1].status, rows[1].shortfall_quantity) == (AssignmentStatus.SOLD, 0)
    assert (rows[2].status, rows[2].shortfall_quantity) == (AssignmentStatus.PARTIALLY_SOLD, 6)
    assert (rows[3].status, rows[3].shortfall_quantity) == (AssignmentStatus.EXPIRED, 10)
    assert (rows[4].status, rows[4].shortfall_quantity) == (AssignmentStatus.SOLD, 0)

    assert summary.selected == 4
    assert summary.processed == 4
    assert summary.failed == 0
    assert summary.oversold == 1
    assert summary.by_status == {"sold": 2, "partially_sold": 1, "expired": 1}
    assert [o.assignment_id for o in summary.outcomes] == [1, 2, 3, 4]
    assert summary.outcomes[3].oversold_quantity == 2


def test_reconcile_day_is_idempotent():
    assignments, sales = _scenario_repos()
    engine = _engine(assignments, sales)

    engine.reconcile_day(DAY)
    first = assignments.snapshot()
    second_summary = engine.reconcile_day(DAY)

    assert assignments.snapshot() == first
    # only the partly sold assignment is still open
    assert second_summary.selected == 1
    assert second_summary.outcomes[0].changed is False


def test_reconcile_day_ignores_other_days():
    assignments = FakeAssignmentsRepo([_assignment(1, product_id=101, day=date(2025, 3, 9))])

    summary = _engine(assignments, FakeSalesRepo([])).reconcile_day(DAY)

    assert summary.selected == 0
    assert assignments.snapshot()[1].status == AssignmentStatus.ASSIGNED


def test_cohort_date_defaults_to_today():
    assignments, sales = _scenario_repos()

    summary = _engine(assignments, sales).reconcile_day()

    assert summary.cohort_date == DAY
    assert summary.processed == 4


def test_failure_is_isolated_to_one_assignment():
    def explode(employee_id, product_id):
        if product_id == 102:
            raise PersistenceError("sales store unavailable")

    assignments, _ = _scenario_repos()
    sales = FakeSalesRepo([_sale(1, product_id=101, quantity=10)], on_sum=explode)
    log = []

    @contextmanager
    def unit_of_work():
        log.append("begin")
        try:
            yield
        except Exception:
            log.append("rollback")
            raise
        log.append("commit")

    summary = _engine(assignments, sales, unit_of_work=unit_of_work).reconcile_day(DAY)

    assert summary.failed == 1
    assert summary.processed == 3
    failed = [o for o in summary.outcomes if o.result == UnitResult.FAILED]
    assert failed[0].assignment_id == 2
    assert "unavailable" in failed[0].error
    assert assignments.snapshot()[2].status == AssignmentStatus.ASSIGNED
    assert log.count("rollback") == 1
    assert log.count("commit") == 3


def test_regression_from_partially_sold_is_reported_not_written():
    assignments = FakeAssignmentsRepo([_assignment(1, product_id=101, status=AssignmentStatus.PARTIALLY_SOLD)])

    summary = _engine(assignments, FakeSalesRepo([])).reconcile_day(DAY)

    assert summary.failed == 1
    assert assignments.writes == []
    assert assignments.snapshot()[1].status == AssignmentStatus.PARTIALLY_SOLD


def test_timed_out_record_is_left_untouched():
    clock = FakeMonotonic()

    def slow(employee_id, product_id):
        if product_id == 102:
            clock.advance(5)

    assignments, _ = _scenario_repos()
    sales = FakeSalesRepo([_sale(1, product_id=101, quantity=10)], on_sum=slow)

    summary = _engine(
        assignments,
        sales,
        max_workers=1,
        record_timeout_seconds=1,
        monotonic=clock,
    ).reconcile_day(DAY)

    assert summary.timed_out == 1
    assert summary.processed == 3
    assert 2 not in assignments.writes
    assert assignments.snapshot()[2].status == AssignmentStatus.ASSIGNED


def test_stuck_record_is_abandoned_and_reported_at_shutdown(caplog):
    clock = FakeMonotonic()
    unblock = threading.Event()

    def stuck(employee_id, product_id):
        if product_id == 102:
            # let the other records finish before the clock jumps
            for _ in range(200):
                if len(assignments.writes) == 3:
                    break
                time.sleep(0.01)
            clock.advance(5)
            unblock.wait(5)

    assignments, _ = _scenario_repos()
    sales = FakeSalesRepo([_sale(1, product_id=101, quantity=10)], on_sum=stuck)

    try:
        with caplog.at_level("WARNING"):
            summary = _engine(
                assignments,
                sales,
                max_workers=4,
                record_timeout_seconds=1,
                monotonic=clock,
            ).reconcile_day(DAY)
    finally:
        unblock.set()

    assert summary.timed_out == 1
    assert summary.processed == 3
    assert "leaves 1 abandoned unit(s) running" in caplog.text


def test_cancel_skips_records_not_yet_started():
    cancel = threading.Event()

    def cancel_after_first(employee_id, product_id):
        cancel.set()

    assignments, _ = _scenario_repos()
    sales = FakeSalesRepo([_sale(1, product_id=101, quantity=10)], on_sum=cancel_after_first)

    summary = _engine(assignments, sales, max_workers=1).reconcile_day(DAY, cancel_event=cancel)

    # the in-flight record still finishes its write
    assert summary.processed == 1
    assert summary.cancelled == 3
    assert assignments.writes == [1]
    rows = assignments.snapshot()
    assert all(rows[i].status == AssignmentStatus.ASSIGNED for i in (2, 3, 4))


def test_overlapping_run_is_rejected():
    assignments, sales = _scenario_repos()
    lock = JobLock(InMemoryCounterStore(), ttl_seconds=60)
    engine = _engine(assignments, sales, job_lock=lock)

    token = lock.acquire("reconcile_day:2025-03-10")
    assert token
    with pytest.raises(JobAlreadyRunningError):
        engine.reconcile_day(DAY)
    assert assignments.writes == []

    lock.release("reconcile_day:2025-03-10", token)
    summary = engine.reconcile_day(DAY)
    assert summary.processed == 4
    assert not lock.is_held("reconcile_day:2025-03-10")


def test_runs_are_recorded_in_ledger():
    assignments, sales = _scenario_repos()
    ledger = FakeRunLedger()

    _engine(assignments, sales, run_ledger=ledger).reconcile_day(DAY)

    run = ledger.runs[1]
    assert run["job_name"] == "reconcile_day"
    assert run["run_key"] == "2025-03-10"
    assert run["status"] == RunStatus.COMPLETED
    assert run["summary"]["processed"] == 4
    assert "outcomes" not in run["summary"]


def test_aborted_run_is_marked_failed():
    class BrokenAssignments(FakeAssignmentsRepo):
        def find_open_assignments(self, cohort_date):
            raise PersistenceError("db down")

    ledger = FakeRunLedger()
    engine = _engine(BrokenAssignments([]), FakeSalesRepo([]), run_ledger=ledger)

    with pytest.raises(PersistenceError):
        engine.reconcile_day(DAY)

    assert ledger.runs[1]["status"] == RunStatus.FAILED
    assert ledger.runs[1]["error"] == "db down"
