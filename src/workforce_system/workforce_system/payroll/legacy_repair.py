from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.counter_store import JobLock
from ..common.datetime_utils import month_bounds, now_local
from ..common.run_ledger import RunLedger
from ..core.constants import REPAIR_JOB
from ..salaries.repository import SalaryRepository
from .model import PayrollBreakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepairSummary:
    scanned: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class LegacyBreakdownRepair:
    """One-shot migrations for historical salary rows.

    Both passes are idempotent: they only touch rows still missing data and
    write with conditional updates, so a second run changes nothing.
    """

    def __init__(
        self,
        salaries: SalaryRepository,
        *,
        job_lock: Optional[JobLock] = None,
        run_ledger: Optional[RunLedger] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._salaries = salaries
        self._job_lock = job_lock
        self._run_ledger = run_ledger
        self._clock = clock

    def run(self) -> RepairSummary:
        """Give every salary without a breakdown `{baseSalary: amount, rest 0}`."""
        return self._guarded("breakdowns", self._repair_breakdowns)

    def backfill_periods(self) -> RepairSummary:
        """Set missing period bounds to the calendar month of the pay date."""
        return self._guarded("periods", self._backfill_periods)

    def _guarded(self, key: str, job: Callable[[], RepairSummary]) -> RepairSummary:
        name = f"{REPAIR_JOB}:{key}"
        if self._job_lock is None:
            return self._recorded(key, job)
        with self._job_lock.hold(name):
            return self._recorded(key, job)

    def _recorded(self, key: str, job: Callable[[], RepairSummary]) -> RepairSummary:
        run_id = None
        if self._run_ledger is not None:
            run_id = self._run_ledger.start(job_name=REPAIR_JOB, run_key=key, started_at=self._clock())
        try:
            summary = job()
        except Exception as e:
            if run_id is not None:
                self._run_ledger.fail(run_id, error=str(e), finished_at=self._clock())
            raise
        if run_id is not None:
            self._run_ledger.finish(run_id, summary=summary.to_dict(), finished_at=self._clock())
        return summary

    def _repair_breakdowns(self) -> RepairSummary:
        scanned = updated = skipped = failed = 0
        for record in self._salaries.list_missing_breakdown():
            scanned += 1
            if record.breakdown is not None:
                skipped += 1
                continue
            try:
                if self._salaries.set_breakdown_if_missing(
                    record.salary_id, breakdown=PayrollBreakdown.legacy(record.amount)
                ):
                    updated += 1
                else:
                    skipped += 1
            except Exception:
                failed += 1
                logger.exception("Breakdown repair failed for salary=%s employee=%s", record.salary_id, record.employee_id)

        summary = RepairSummary(scanned=scanned, updated=updated, skipped=skipped, failed=failed)
        logger.info("Breakdown repair finished: %s", summary)
        return summary

    def _backfill_periods(self) -> RepairSummary:
        scanned = updated = skipped = failed = 0
        for record in self._salaries.list_missing_period():
            scanned += 1
            if record.period_start is not None and record.period_end is not None:
                skipped += 1
                continue
            start, end = month_bounds(record.pay_date)
            try:
                if self._salaries.set_period_if_missing(record.salary_id, period_start=start, period_end=end):
                    updated += 1
                else:
                    skipped += 1
            except Exception:
                failed += 1
                logger.exception("Period backfill failed for salary=%s pay_date=%s", record.salary_id, record.pay_date)

        summary = RepairSummary(scanned=scanned, updated=updated, skipped=skipped, failed=failed)
        logger.info("Salary period backfill finished: %s", summary)
        return summary
