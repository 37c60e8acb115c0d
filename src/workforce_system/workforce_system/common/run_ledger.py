from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import RunStatus


@dataclass(frozen=True)
class JobRun:
    run_id: int
    job_name: str
    run_key: str
    status: RunStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    summary: Optional[dict] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "jobName": self.job_name,
            "runKey": self.run_key,
            "status": self.status.value,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "summary": self.summary,
            "error": self.error,
        }


class RunLedger(Protocol):
    """History of batch runs. Recording a run never blocks a later re-run."""

    def start(self, *, job_name: str, run_key: str, started_at: datetime) -> int:
        raise NotImplementedError

    def finish(self, run_id: int, *, summary: dict, finished_at: datetime) -> None:
        raise NotImplementedError

    def fail(self, run_id: int, *, error: str, finished_at: datetime) -> None:
        raise NotImplementedError

    def list_runs(self, *, job_name: str, run_key: Optional[str] = None, limit: int = 20) -> Sequence[JobRun]:
        raise NotImplementedError
