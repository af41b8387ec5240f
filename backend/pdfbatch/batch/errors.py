"""
Domain-specific exception hierarchy for the batch engine.

All batch exceptions inherit from BatchError so callers can catch
broadly or narrowly as needed.  Each exception carries structured
context (job ID, instruction label, etc.) for logging/debugging.

Taxonomy:
    SubmissionError        — rejected synchronously, no job created
    InstructionError       — one instruction produced no output (hard error)
    RetryExhaustedError    — a retried operation failed on every attempt
    ArchiveError / JobTimeoutError — batch-fatal, the whole job fails
"""

from __future__ import annotations

from pdfbatch.core.constants import ErrorCode


class BatchError(Exception):
    """Base exception for all batch errors."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        label: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.job_id = job_id
        self.label = label
        self.details = details or {}
        super().__init__(message)


# ═══════════════════════════════════════════════════════════
#  Submission errors
# ═══════════════════════════════════════════════════════════

class SubmissionError(BatchError):
    """The submitted batch is malformed or not acceptable."""

    code: ErrorCode = ErrorCode.INVALID_REQUEST
    status_code: int = 400

    def to_dict(self) -> dict:
        """Serialise for the API error envelope."""
        return {
            "code": self.code.value,
            "message": str(self),
            "details": self.details,
        }


class MissingFieldError(SubmissionError):
    """A required instruction or request field is absent."""

    code = ErrorCode.MISSING_PARAMS


class BatchTooLargeError(SubmissionError):
    """The batch exceeds the operation count or size cap."""

    code = ErrorCode.BATCH_TOO_LARGE
    status_code = 413


class RateLimitExceededError(SubmissionError):
    """The submitting user exhausted their request window."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429


# ═══════════════════════════════════════════════════════════
#  Instruction-level errors
# ═══════════════════════════════════════════════════════════

class InstructionError(BatchError):
    """An instruction could not produce any output."""
    pass


class SourceNotFoundError(InstructionError):
    """The source document does not exist in the blob store."""
    pass


class SourceTooLargeError(InstructionError):
    """The source document exceeds the per-file size cap."""
    pass


class NoValidPagesError(InstructionError):
    """Nothing usable could be copied into the output document."""
    pass


class DocumentLoadError(InstructionError):
    """The source bytes could not be parsed as a PDF."""
    pass


class RetryExhaustedError(BatchError):
    """A retried operation failed on every attempt."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        **kwargs,
    ) -> None:
        self.attempts = attempts
        super().__init__(message, **kwargs)


# ═══════════════════════════════════════════════════════════
#  Batch-fatal errors
# ═══════════════════════════════════════════════════════════

class ArchiveError(BatchError):
    """Building or uploading the result archive failed."""
    pass


class StorageError(BatchError):
    """Blob storage operation (S3/MinIO/local) failed."""
    pass


class JobTimeoutError(BatchError):
    """The batch ran past its wall-clock deadline."""
    pass


class InvalidJobTransitionError(BatchError):
    """A job status or progress write would move the record backwards."""
    pass
