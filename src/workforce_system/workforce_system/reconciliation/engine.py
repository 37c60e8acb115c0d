from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from contextlib import nullcontext
from datetime import date, datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..common.counter_store import JobLease, JobLock
from ..common.datetime_utils import day_window, now_local
from ..common.run_ledger import RunLedger
from ..core.constants import DEFAULT_MAX_WORKERS, DEFAULT_RECORD_TIMEOUT_SECONDS, RECONCILE_JOB
from ..core.exceptions import RecordTimeoutError, ValidationError
from ..inventory.model import Assignment
from ..inventory.repository import AssignmentRepository
from ..sales.repository import SalesRepository
from .factory import ReconciliationStrategyFactory
from .model import AssignmentOutcome, ReconciliationSummary, UnitResult

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Settles a day's product assignments against that day's sales.

    Every assignment is its own unit of work: a failure, timeout or
    cancellation touches only that assignment, which stays open for the next
    run. Runs for the same day never overlap (job lock) and every run is
    written to the run ledger.
    """

    def __init__(
        self,
        assignments: AssignmentRepository,
        sales: SalesRepository,
        *,
        strategy_factory: Optional[ReconciliationStrategyFactory] = None,
        job_lock: Optional[JobLock] = None,
        run_ledger: Optional[RunLedger] = None,
        unit_of_work: Callable[[], ContextManager] = nullcontext,
        max_workers: int = DEFAULT_MAX_WORKERS,
        record_timeout_seconds: float = DEFAULT_RECORD_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_local,
        monotonic: Callable[[], float] = time.monotonic,
        poll_interval: float = 0.05,
    ):
        if int(max_workers) < 1:
            raise ValidationError("max_workers must be at least 1")
        if float(record_timeout_seconds) <= 0:
            raise ValidationError("record_timeout_seconds must be positive")

        self._assignments = assignments
        self._sales = sales
        self._factory = strategy_factory or ReconciliationStrategyFactory()
        self._job_lock = job_lock
        self._run_ledger = run_ledger
        self._unit_of_work = unit_of_work
        self._max_workers = int(max_workers)
        self._timeout = float(record_timeout_seconds)
        # A unit past its deadline normally reports itself; the grace period
        # only covers units stuck inside a repository call.
        self._abandon_after = self._timeout + max(0.5, self._timeout * 0.1)
        self._clock = clock
        self._monotonic = monotonic
        self._poll_interval = float(poll_interval)

    def reconcile_day(
        self,
        cohort_date: Optional[date] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconciliationSummary:
        cohort_date = cohort_date or self._clock().date()
        cancel_event = cancel_event or threading.Event()

        if self._job_lock is None:
            return self._recorded(cohort_date, cancel_event, None)
        with self._job_lock.hold(f"{RECONCILE_JOB}:{cohort_date.isoformat()}") as lease:
            return self._recorded(cohort_date, cancel_event, lease)

    def _recorded(
        self, cohort_date: date, cancel_event: threading.Event, lease: Optional[JobLease]
    ) -> ReconciliationSummary:
        run_id = None
        if self._run_ledger is not None:
            run_id = self._run_ledger.start(
                job_name=RECONCILE_JOB, run_key=cohort_date.isoformat(), started_at=self._clock()
            )
        try:
            summary = self._run(cohort_date, cancel_event, lease)
        except Exception as e:
            logger.exception("Reconciliation for %s aborted", cohort_date)
            if run_id is not None:
                self._run_ledger.fail(run_id, error=str(e), finished_at=self._clock())
            raise
        if run_id is not None:
            self._run_ledger.finish(
                run_id, summary=summary.to_dict(include_outcomes=False), finished_at=self._clock()
            )
        return summary

    def _run(
        self, cohort_date: date, cancel_event: threading.Event, lease: Optional[JobLease]
    ) -> ReconciliationSummary:
        selected = list(self._assignments.find_open_assignments(cohort_date))
        logger.info("Reconciling %d open assignment(s) for %s", len(selected), cohort_date)

        outcomes = self._fan_out(selected, cohort_date, cancel_event, lease) if selected else []
        summary = ReconciliationSummary.from_outcomes(cohort_date, outcomes)
        logger.info(
            "Reconciliation for %s done: processed=%d skipped=%d failed=%d timed_out=%d cancelled=%d oversold=%d",
            cohort_date,
            summary.processed,
            summary.skipped,
            summary.failed,
            summary.timed_out,
            summary.cancelled,
            summary.oversold,
        )
        return summary

    def _fan_out(
        self,
        selected: Sequence[Assignment],
        cohort_date: date,
        cancel_event: threading.Event,
        lease: Optional[JobLease] = None,
    ) -> list[AssignmentOutcome]:
        results: dict[int, AssignmentOutcome] = {}
        started: dict[int, float] = {}
        started_lock = threading.Lock()

        def mark_started(assignment_id: int) -> None:
            with started_lock:
                started[assignment_id] = self._monotonic()

        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="reconcile")
        futures: dict[Future, Assignment] = {}
        try:
            for assignment in selected:
                future = executor.submit(self._reconcile_one, assignment, cohort_date, cancel_event, mark_started)
                futures[future] = assignment

            pending = set(futures)
            while pending:
                if lease is not None:
                    lease.keep_alive()
                done, pending = wait(pending, timeout=self._poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    assignment = futures[future]
                    if future.cancelled():
                        results[assignment.assignment_id] = _outcome(assignment, UnitResult.CANCELLED)
                    else:
                        results[assignment.assignment_id] = future.result()

                now = self._monotonic()
                for future in list(pending):
                    if future.done():
                        # collected on the next pass
                        continue
                    assignment = futures[future]
                    if cancel_event.is_set() and future.cancel():
                        results[assignment.assignment_id] = _outcome(assignment, UnitResult.CANCELLED)
                        pending.discard(future)
                        continue
                    with started_lock:
                        began = started.get(assignment.assignment_id)
                    if began is not None and now - began > self._abandon_after:
                        logger.warning(
                            "Abandoning assignment=%s employee=%s product=%s day=%s after %.1fs",
                            assignment.assignment_id,
                            assignment.employee_id,
                            assignment.product_id,
                            cohort_date,
                            now - began,
                        )
                        results[assignment.assignment_id] = _outcome(
                            assignment, UnitResult.TIMED_OUT, error="Record exceeded its time budget"
                        )
                        pending.discard(future)
        finally:
            still_running = sum(1 for f in futures if f.running())
            if still_running:
                logger.warning(
                    "Reconciliation for %s leaves %d abandoned unit(s) running; their row locks clear when they finish",
                    cohort_date,
                    still_running,
                )
            executor.shutdown(wait=False, cancel_futures=True)

        if cancel_event.is_set():
            logger.warning("Reconciliation for %s was cancelled", cohort_date)
        return [results[a.assignment_id] for a in selected]

    def _reconcile_one(
        self,
        assignment: Assignment,
        cohort_date: date,
        cancel_event: threading.Event,
        mark_started: Callable[[int], None],
    ) -> AssignmentOutcome:
        if cancel_event.is_set():
            return _outcome(assignment, UnitResult.CANCELLED)

        mark_started(assignment.assignment_id)
        deadline = self._monotonic() + self._timeout
        start, end = day_window(cohort_date)

        try:
            with self._unit_of_work():
                current = self._assignments.get_for_update(assignment.assignment_id)
                if current is None or not current.status.is_open:
                    return _outcome(assignment, UnitResult.SKIPPED, status=current.status if current else None)

                sold = self._sales.sum_sales(
                    employee_id=current.employee_id,
                    product_id=current.product_id,
                    start=start,
                    end=end,
                )
                decision = self._factory.decide(current=current.status, quantity=current.quantity, sold_quantity=sold)

                if self._monotonic() > deadline:
                    raise RecordTimeoutError(
                        f"Assignment {current.assignment_id} ran past {self._timeout:g}s before writing"
                    )
                self._assignments.update_assignment(
                    current.assignment_id,
                    status=decision.status,
                    shortfall_quantity=decision.shortfall_quantity,
                )
        except RecordTimeoutError as e:
            logger.warning(
                "Timed out assignment=%s employee=%s product=%s day=%s",
                assignment.assignment_id,
                assignment.employee_id,
                assignment.product_id,
                cohort_date,
            )
            return _outcome(assignment, UnitResult.TIMED_OUT, error=str(e))
        except Exception as e:
            logger.exception(
                "Reconciliation failed for assignment=%s employee=%s product=%s day=%s",
                assignment.assignment_id,
                assignment.employee_id,
                assignment.product_id,
                cohort_date,
            )
            return _outcome(assignment, UnitResult.FAILED, error=str(e))

        if decision.oversold_quantity:
            logger.warning(
                "Oversold assignment=%s employee=%s product=%s: sold %d of %d",
                current.assignment_id,
                current.employee_id,
                current.product_id,
                sold,
                current.quantity,
            )

        return AssignmentOutcome(
            assignment_id=current.assignment_id,
            employee_id=current.employee_id,
            product_id=current.product_id,
            result=UnitResult.UPDATED,
            status=decision.status,
            sold_quantity=sold,
            shortfall_quantity=decision.shortfall_quantity,
            oversold_quantity=decision.oversold_quantity,
            changed=(decision.status, decision.shortfall_quantity) != (current.status, current.shortfall_quantity),
        )


def _outcome(assignment: Assignment, result: UnitResult, *, status=None, error: Optional[str] = None) -> AssignmentOutcome:
    return AssignmentOutcome(
        assignment_id=assignment.assignment_id,
        employee_id=assignment.employee_id,
        product_id=assignment.product_id,
        result=result,
        status=status,
        error=error,
    )
