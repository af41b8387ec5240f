"""
Job Record — the persisted, pollable status of one batch.

JobRecord is the row shape; JobStore is the job-table contract
(insert / update / get) the engine depends on; JobTracker is the single
writer for one job id and enforces the state machine:

    queued → processing → completed | failed
    queued → failed                              (timeout / crash before start)

`processed` only ever increases and nothing is written once a terminal
status has been recorded.  The tracker flips its local status before
awaiting the store, so a timeout and a finishing runner can never both
win the terminal write.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog

from pdfbatch.batch.errors import InvalidJobTransitionError
from pdfbatch.core.constants import JOB_TRANSITIONS, JobStatus, OperationKind
from pdfbatch.core.logging import get_logger


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobRecord:
    """One row of the job table."""

    user_id: str
    operation: OperationKind
    total: int
    id: str | None = None
    status: JobStatus = JobStatus.QUEUED
    processed: int = 0
    errors: list[str] = field(default_factory=list)
    result_location: str | None = None
    total_size_bytes: int = 0
    file_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    def copy(self, **changes: Any) -> "JobRecord":
        changes.setdefault("errors", list(self.errors))
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, list):
                value = list(value)
            out[f.name] = value
        return out


class JobStore(Protocol):
    """Job-table contract."""

    async def insert(self, job: JobRecord) -> str: ...

    async def update(self, job_id: str, fields: dict[str, Any]) -> None: ...

    async def get(self, job_id: str) -> JobRecord | None: ...


# ═══════════════════════════════════════════════════════════
#  JobTracker
# ═══════════════════════════════════════════════════════════

class JobTracker:
    """Single logical owner of one job's record while it runs."""

    def __init__(
        self,
        store: JobStore,
        job_id: str,
        *,
        total: int = 0,
        status: JobStatus = JobStatus.QUEUED,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.job_id = job_id
        self.total = total
        self.status = status
        self.processed = 0
        self.errors: list[str] = []
        self.logger = (log or get_logger("batch.job")).bind(job_id=job_id)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _check_transition(self, target: JobStatus) -> None:
        if target not in JOB_TRANSITIONS[self.status]:
            raise InvalidJobTransitionError(
                f"Job {self.job_id} cannot move from {self.status} to {target}",
                job_id=self.job_id,
                details={"from": self.status.value, "to": target.value},
            )

    async def _transition(self, target: JobStatus, extra: dict[str, Any]) -> None:
        self._check_transition(target)
        previous = self.status
        self.status = target
        now = utcnow()
        values = {"status": target, "updated_at": now, **extra}
        if target.is_terminal:
            values["completed_at"] = now
        try:
            await self.store.update(self.job_id, values)
        except Exception:
            # Not persisted: the record still shows `previous`.
            if self.status == target:
                self.status = previous
            raise
        self.logger.info("Job status changed", previous=previous.value, status=target.value)

    async def start(self) -> None:
        """queued → processing, immediately before the first chunk."""
        await self._transition(JobStatus.PROCESSING, {"started_at": utcnow()})

    async def record_progress(self, processed: int, total_size_bytes: int) -> bool:
        """
        Persist a new `processed` count.

        Returns False (and writes nothing) when the job is already
        terminal, e.g. after the timeout guard fired.
        """
        if self.is_terminal:
            self.logger.debug("Progress after terminal state dropped", processed=processed)
            return False
        if processed < self.processed:
            raise InvalidJobTransitionError(
                f"Progress cannot go backwards ({self.processed} → {processed})",
                job_id=self.job_id,
            )
        self.processed = processed
        await self.store.update(self.job_id, {
            "processed": processed,
            "total_size_bytes": total_size_bytes,
            "updated_at": utcnow(),
        })
        return True

    async def complete(
        self,
        *,
        result_location: str,
        errors: list[str],
        total_size_bytes: int,
    ) -> None:
        self.errors = list(errors)
        await self._transition(JobStatus.COMPLETED, {
            "errors": list(errors),
            "result_location": result_location,
            "total_size_bytes": total_size_bytes,
        })

    async def fail(self, errors: list[str]) -> None:
        """Terminal failure; `errors` is the partial list plus the cause."""
        self.errors = list(errors)
        await self._transition(JobStatus.FAILED, {"errors": list(errors)})
