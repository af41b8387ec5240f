"""Shared constants and enums used across the application."""

from enum import StrEnum


class JobStatus(StrEnum):
    """Lifecycle status of a processing job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class OperationKind(StrEnum):
    """Document operation applied by every instruction of a batch."""

    MERGE = "merge"
    DELETE = "delete"
    SPLIT = "split"
    REORDER = "reorder"
    RENAME = "rename"


class ErrorCode(StrEnum):
    """Machine-readable codes for synchronous submission errors."""

    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_PARAMS = "MISSING_PARAMS"
    BATCH_TOO_LARGE = "BATCH_TOO_LARGE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"


# ─── Allowed job transitions ──────────────────────────
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

ZIP_CONTENT_TYPE = "application/zip"
RESULT_ARCHIVE_NAME = "result.zip"
