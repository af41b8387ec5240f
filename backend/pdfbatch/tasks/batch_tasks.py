"""
Celery tasks — batch execution.

Wires BatchService.run into the Celery task system.  Each task runs one
queued job to a terminal state inside its own asyncio.run(), with a
fresh DB engine so connections never cross event loops.
"""

import asyncio
from typing import Any

import structlog

from pdfbatch.tasks import celery_app
from pdfbatch.batch.context import BatchResult
from pdfbatch.batch.job_record import JobTracker
from pdfbatch.batch.service import BatchService
from pdfbatch.db.session import make_engine, make_session_factory
from pdfbatch.repositories.jobs import SqlJobStore
from pdfbatch.storage.blob_store import build_blob_stores

logger = structlog.get_logger("tasks.batch")


async def _run_batch(job_id: str, user_id: str, operation: str, instructions: Any) -> BatchResult:
    engine = make_engine()
    try:
        job_store = SqlJobStore(make_session_factory(engine))
        uploads, results = build_blob_stores()
        service = BatchService(job_store, uploads, results)
        return await service.run(job_id, user_id, operation, instructions)
    finally:
        await engine.dispose()


async def _mark_failed(job_id: str, error: str) -> None:
    engine = make_engine()
    try:
        job_store = SqlJobStore(make_session_factory(engine))
        record = await job_store.get(job_id)
        if record is None or record.status.is_terminal:
            return
        tracker = JobTracker(job_store, job_id, total=record.total, status=record.status)
        tracker.errors = list(record.errors)
        await tracker.fail(list(record.errors) + [error])
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="pdfbatch.tasks.batch_tasks.process_batch")
def process_batch(
    self,
    job_id: str,
    user_id: str,
    operation: str,
    instructions: Any,
):
    """
    Run one queued batch.

    The job record moves queued → processing → completed/failed; the task
    return value is informational only (clients poll the job record).
    """
    task_log = logger.bind(task_id=self.request.id, job_id=job_id, user_id=user_id)
    task_log.info("Batch task started", operation=operation)

    try:
        result = asyncio.run(_run_batch(job_id, user_id, operation, instructions))
    except Exception as exc:
        # Crash outside the runner's own handling
        task_log.exception("Batch task crashed", error=str(exc))
        try:
            asyncio.run(_mark_failed(job_id, f"Unexpected error: {exc}"))
        except Exception as mark_exc:
            task_log.error("Failed to mark job as failed", error=str(mark_exc))
        raise

    task_log.info(
        "Batch task finished",
        status=result.status.value,
        processed=result.processed,
        total=result.total,
        errors=len(result.errors),
        duration_ms=result.duration_ms,
    )
    return result.to_dict()
