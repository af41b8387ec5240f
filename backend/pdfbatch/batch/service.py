"""
BatchService — submission and execution entry points.

submit() is synchronous from the client's point of view: it validates
the batch, applies the rate limit, inserts a `queued` job and returns
the id.  Nothing about the outcome is reported there; clients poll the
job record.  run() is what the background worker calls: it rebuilds
the instructions, wires engine + runner + tracker and races the batch
against the job deadline.
"""

from __future__ import annotations

from typing import Any

from pdfbatch.batch.context import BatchResult, OperationContext
from pdfbatch.batch.document_engine import DocumentOpEngine
from pdfbatch.batch.errors import BatchTooLargeError, SubmissionError
from pdfbatch.batch.instructions import count_units, parse_instructions, parse_operation
from pdfbatch.batch.job_record import JobRecord, JobStore, JobTracker
from pdfbatch.batch.rate_limit import RateLimiter
from pdfbatch.batch.retry import RetryPolicy
from pdfbatch.batch.runner import ChunkedBatchRunner
from pdfbatch.batch.timeout_guard import run_with_deadline
from pdfbatch.core.config import settings
from pdfbatch.core.constants import JobStatus
from pdfbatch.core.logging import get_logger
from pdfbatch.storage.blob_store import BlobStore


class BatchService:
    def __init__(
        self,
        job_store: JobStore,
        source_store: BlobStore,
        result_store: BlobStore,
        *,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        max_operations: int | None = None,
        max_batch_bytes: int | None = None,
        max_file_size: int | None = None,
        chunk_size: int | None = None,
        chunk_pause: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self.job_store = job_store
        self.source_store = source_store
        self.result_store = result_store
        self.rate_limiter = rate_limiter
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.max_operations = max_operations or settings.MAX_OPERATIONS_PER_JOB
        self.max_batch_bytes = max_batch_bytes or settings.MAX_BATCH_SIZE_BYTES
        self.max_file_size = max_file_size or settings.MAX_FILE_SIZE_BYTES
        self.chunk_size = chunk_size or settings.CHUNK_SIZE
        self.chunk_pause = chunk_pause
        self.timeout = timeout or settings.JOB_TIMEOUT_SECONDS
        self.logger = get_logger("batch.service")

    # ─── Submission ────────────────────────────────────

    async def submit(
        self,
        user_id: str,
        operation: str,
        raw_instructions: Any,
        *,
        estimated_size_bytes: int | None = None,
    ) -> str:
        """
        Validate a batch and create its job record.

        Raises:
            SubmissionError: malformed, oversized or rate-limited batch.
                             No job is created in that case.
        """
        log = self.logger.bind(user_id=user_id, operation=operation)

        kind = parse_operation(operation)
        instructions = parse_instructions(kind, raw_instructions)

        units = count_units(instructions)
        if units > self.max_operations:
            raise BatchTooLargeError(
                f"Too many operations ({units}). Maximum {self.max_operations} per batch.",
                details={"count": units, "limit": self.max_operations},
            )
        if estimated_size_bytes is not None and estimated_size_bytes > self.max_batch_bytes:
            raise BatchTooLargeError(
                f"Batch too large ({estimated_size_bytes} bytes). "
                f"Maximum {self.max_batch_bytes} bytes per batch.",
                details={"size": estimated_size_bytes, "limit": self.max_batch_bytes},
            )

        # Only well-formed batches count against the allowance.
        if self.rate_limiter is not None:
            self.rate_limiter.check(user_id)

        job_id = await self.job_store.insert(JobRecord(
            user_id=user_id,
            operation=kind,
            total=len(instructions),
            file_count=units,
        ))
        log.info("Batch queued", job_id=job_id, total=len(instructions), file_count=units)
        return job_id

    # ─── Execution ─────────────────────────────────────

    async def run(
        self,
        job_id: str,
        user_id: str,
        operation: str,
        raw_instructions: Any,
    ) -> BatchResult:
        """Execute a queued job to a terminal state (never raises for batch errors)."""
        log = self.logger.bind(job_id=job_id, user_id=user_id, operation=operation)
        tracker = JobTracker(self.job_store, job_id, log=log)

        try:
            instructions = parse_instructions(operation, raw_instructions)
        except SubmissionError as exc:
            log.error("Queued job has invalid instructions", error=str(exc))
            await tracker.fail([f"Invalid instructions: {exc}"])
            return BatchResult(job_id=job_id, status=JobStatus.FAILED, errors=list(tracker.errors))

        tracker.total = len(instructions)
        engine = DocumentOpEngine(OperationContext(
            user_id=user_id,
            fetch=self.source_store.fetch,
            retry_policy=self.retry_policy,
            max_file_size=self.max_file_size,
            producer=settings.PDF_PRODUCER,
            job_id=job_id,
            logger=log,
        ))
        runner = ChunkedBatchRunner(
            engine,
            result_store=self.result_store,
            chunk_size=self.chunk_size,
            chunk_pause=self.chunk_pause,
        )

        return await run_with_deadline(
            runner.run(tracker, user_id=user_id, instructions=instructions),
            tracker,
            self.timeout,
        )
