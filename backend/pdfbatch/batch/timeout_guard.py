"""
Timeout guard — races a whole batch against one wall-clock deadline.

On expiry the job is force-failed with a timeout error appended to
whatever errors were collected so far.  The runner is not cancelled;
it is abandoned in place, and the tracker's terminal-state check makes
its later writes no-ops (its outputs never reach the result store).
"""

from __future__ import annotations

import asyncio
from typing import Awaitable

from pdfbatch.batch.context import BatchResult
from pdfbatch.batch.errors import InvalidJobTransitionError, JobTimeoutError
from pdfbatch.batch.job_record import JobTracker
from pdfbatch.core.constants import JobStatus
from pdfbatch.core.logging import get_logger

logger = get_logger(__name__)


def _log_abandoned(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Abandoned batch task ended with error", error=str(exc))


async def run_with_deadline(
    batch: Awaitable[BatchResult],
    tracker: JobTracker,
    timeout: float,
) -> BatchResult:
    """Await `batch`, or fail the job once `timeout` seconds have passed."""
    task = asyncio.ensure_future(batch)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()

    task.add_done_callback(_log_abandoned)
    error = JobTimeoutError(f"Job timeout after {timeout:g}s", job_id=tracker.job_id)
    log = logger.bind(job_id=tracker.job_id, processed=tracker.processed)
    log.error("Batch deadline exceeded", timeout_seconds=timeout)

    errors = list(tracker.errors) + [str(error)]
    try:
        await tracker.fail(errors)
    except InvalidJobTransitionError:
        # The runner reached a terminal state in the same tick.
        log.warning("Job finished concurrently with timeout", status=tracker.status.value)

    return BatchResult(
        job_id=tracker.job_id,
        status=tracker.status if tracker.status.is_terminal else JobStatus.FAILED,
        total=tracker.total,
        processed=tracker.processed,
        errors=list(tracker.errors),
    )
