"""
Job repository containing all data-access operations for the processing_jobs table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit

SqlJobStore adapts these functions to the JobStore contract the batch
engine uses; it owns its sessions and commits each write.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pdfbatch.batch.job_record import JobRecord
from pdfbatch.core.constants import JobStatus, OperationKind
from pdfbatch.db.models.processing_job import ProcessingJob

_UPDATABLE = {
    "status",
    "processed",
    "total",
    "errors",
    "result_location",
    "total_size_bytes",
    "file_count",
    "started_at",
    "updated_at",
    "completed_at",
}


def _as_uuid(job_id: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(job_id, uuid.UUID):
        return job_id
    try:
        return uuid.UUID(str(job_id))
    except ValueError:
        return None


def to_record(job: ProcessingJob) -> JobRecord:
    """Map an ORM row onto the engine's JobRecord."""
    return JobRecord(
        id=str(job.id),
        user_id=job.user_id,
        operation=OperationKind(job.operation),
        status=JobStatus(job.status),
        total=job.total,
        processed=job.processed,
        errors=list(job.errors or []),
        result_location=job.result_location,
        total_size_bytes=job.total_size_bytes,
        file_count=job.file_count,
        created_at=job.created_at,
        started_at=job.started_at,
        updated_at=job.updated_at,
        completed_at=job.completed_at,
    )


async def create_job(db: AsyncSession, record: JobRecord) -> ProcessingJob:
    """Insert a new job row from a JobRecord."""
    job = ProcessingJob(
        user_id=record.user_id,
        operation=str(record.operation),
        status=str(record.status),
        total=record.total,
        processed=record.processed,
        errors=list(record.errors),
        result_location=record.result_location,
        total_size_bytes=record.total_size_bytes,
        file_count=record.file_count,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
    if record.id is not None:
        job.id = _as_uuid(record.id)
    db.add(job)
    await db.flush()
    return job


async def get_job(db: AsyncSession, job_id: str | uuid.UUID) -> ProcessingJob | None:
    """Fetch a job by primary key (None for unknown or malformed ids)."""
    key = _as_uuid(job_id)
    if key is None:
        return None
    return await db.get(ProcessingJob, key)


async def update_job(db: AsyncSession, job_id: str | uuid.UUID, values: dict[str, Any]) -> None:
    """Apply a partial update to one job row."""
    key = _as_uuid(job_id)
    if key is None:
        raise ValueError(f"Invalid job id: {job_id}")

    unknown = set(values) - _UPDATABLE
    if unknown:
        raise ValueError(f"Unknown job fields: {', '.join(sorted(unknown))}")

    clean = {
        name: (str(value) if name == "status" else value)
        for name, value in values.items()
    }
    if "errors" in clean:
        clean["errors"] = list(clean["errors"])

    await db.execute(
        update(ProcessingJob)
        .where(ProcessingJob.id == key)
        .values(**clean)
    )
    await db.flush()


# ═══════════════════════════════════════════════════════════
#  JobStore adapter
# ═══════════════════════════════════════════════════════════

class SqlJobStore:
    """JobStore backed by the processing_jobs table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def insert(self, job: JobRecord) -> str:
        async with self.session_factory() as session:
            async with session.begin():
                row = await create_job(session, job)
                return str(row.id)

    async def update(self, job_id: str, fields: dict[str, Any]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await update_job(session, job_id, fields)

    async def get(self, job_id: str) -> JobRecord | None:
        async with self.session_factory() as session:
            row = await get_job(session, job_id)
            return to_record(row) if row is not None else None
