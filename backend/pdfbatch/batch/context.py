"""
Batch data carriers — what flows between the engine, runner and job record.

OperationContext is handed to every document operation: it knows which
user's uploads to read, how to fetch them (retry-wrapped) and the
per-file limits.  InstructionOutcome is what an operation returns;
BatchResult is the runner's final summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog

from pdfbatch.batch.errors import SourceNotFoundError, SourceTooLargeError
from pdfbatch.batch.instructions import source_path
from pdfbatch.batch.retry import RetryPolicy, with_retry
from pdfbatch.core.logging import get_logger

# fetch(path) -> bytes, or None when the object does not exist
FetchFn = Callable[[str], Awaitable[bytes | None]]


# ═══════════════════════════════════════════════════════════
#  Outputs
# ═══════════════════════════════════════════════════════════

@dataclass
class OutputFile:
    """One produced document, keyed by its archive entry name."""

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class InstructionOutcome:
    """
    Successful (possibly partial) result of one instruction.

    `sub_errors` are soft errors: the instruction still produced output
    but something was lost (missing merge source, failed split range).
    """

    label: str
    outputs: list[OutputFile] = field(default_factory=list)
    sub_errors: list[str] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(o.size for o in self.outputs)


# ═══════════════════════════════════════════════════════════
#  OperationContext
# ═══════════════════════════════════════════════════════════

@dataclass
class OperationContext:
    """Everything a document operation needs besides its instruction."""

    user_id: str
    fetch: FetchFn
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    max_file_size: int | None = None
    producer: str = "Bulk PDF Processor"
    job_id: str | None = None
    logger: structlog.stdlib.BoundLogger = field(default_factory=lambda: get_logger("batch.operations"))

    async def try_fetch_source(self, filename: str) -> bytes | None:
        """
        Download an uploaded source document, retrying transient errors.

        Returns None if the object does not exist.  Raises
        RetryExhaustedError when every attempt errored and
        SourceTooLargeError when the document exceeds the per-file cap.
        """
        path = source_path(self.user_id, filename)
        data = await with_retry(
            lambda: self.fetch(path),
            self.retry_policy,
            context=f"fetch {filename}",
            log=self.logger,
        )
        if data is not None and self.max_file_size is not None and len(data) > self.max_file_size:
            raise SourceTooLargeError(
                f"{filename} exceeds size limit",
                job_id=self.job_id,
                label=filename,
                details={"size": len(data), "limit": self.max_file_size},
            )
        return data

    async def fetch_source(self, filename: str) -> bytes:
        """Like try_fetch_source(), but a missing document is a hard error."""
        data = await self.try_fetch_source(filename)
        if data is None:
            raise SourceNotFoundError(
                f"File not found: {filename}",
                job_id=self.job_id,
                label=filename,
            )
        return data


# ═══════════════════════════════════════════════════════════
#  BatchResult
# ═══════════════════════════════════════════════════════════

@dataclass
class BatchResult:
    """Final outcome of a batch run."""

    job_id: str
    status: str                     # JobStatus value
    total: int = 0
    processed: int = 0
    entries: int = 0
    total_size_bytes: int = 0
    errors: list[str] = field(default_factory=list)
    result_location: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "total": self.total,
            "processed": self.processed,
            "entries": self.entries,
            "total_size_bytes": self.total_size_bytes,
            "errors": list(self.errors),
            "result_location": self.result_location,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
        }
