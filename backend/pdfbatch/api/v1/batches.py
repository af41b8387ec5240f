"""
Batch endpoints — submit a batch, poll its job record.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from pdfbatch.api.deps import get_batch_service, get_job_store, get_user_id
from pdfbatch.api.schemas.batches import BatchSubmitRequest, BatchSubmitResponse, JobStatusResponse
from pdfbatch.batch.job_record import JobStore, JobTracker
from pdfbatch.batch.service import BatchService
from pdfbatch.core.constants import ErrorCode
from pdfbatch.core.logging import get_logger
from pdfbatch.tasks.batch_tasks import process_batch

router = APIRouter(prefix="/batches", tags=["Batches"])
logger = get_logger("api.batches")


# ─── Submit ───────────────────────────────────────────────
@router.post("", response_model=BatchSubmitResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_batch(
    payload: BatchSubmitRequest,
    user_id: str = Depends(get_user_id),
    service: BatchService = Depends(get_batch_service),
):
    """
    Submit a batch.

    1. Validates and creates a `queued` job (rejections raise SubmissionError)
    2. Dispatches the Celery task that runs it
    3. Returns the job id immediately; the outcome is only visible by polling
    """
    job_id = await service.submit(
        user_id,
        payload.operation,
        payload.instructions,
        estimated_size_bytes=payload.estimated_size_bytes,
    )

    try:
        process_batch.delay(job_id, user_id, payload.operation, payload.instructions)
    except Exception as exc:
        logger.error("Failed to dispatch batch task", job_id=job_id, error=str(exc))
        await JobTracker(service.job_store, job_id).fail([f"Failed to dispatch job: {exc}"])

    return BatchSubmitResponse(job_id=job_id)


# ─── Poll ─────────────────────────────────────────────────
@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_batch(
    job_id: str,
    user_id: str = Depends(get_user_id),
    job_store: JobStore = Depends(get_job_store),
):
    """Current state of one job owned by the caller."""
    record = await job_store.get(job_id)
    if record is None or record.user_id != user_id:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": {
                "code": ErrorCode.JOB_NOT_FOUND.value,
                "message": "Job not found",
                "details": {"jobId": job_id},
            }},
        )
    return JobStatusResponse.from_record(record)
