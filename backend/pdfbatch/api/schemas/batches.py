"""Batch submission and job status schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pdfbatch.batch.job_record import JobRecord
from pdfbatch.core.constants import JobStatus, OperationKind


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BatchSubmitRequest(_CamelModel):
    """Request payload for POST /batches.

    `instructions` stays loosely typed here; its shape depends on the
    operation and is validated by the batch service.
    """

    operation: str = Field(..., min_length=1, max_length=20)
    instructions: Any
    estimated_size_bytes: int | None = Field(default=None, ge=0)


class BatchSubmitResponse(_CamelModel):
    job_id: str
    status: JobStatus = JobStatus.QUEUED


class JobStatusResponse(_CamelModel):
    """Pollable view of one job record."""

    job_id: str
    operation: OperationKind
    status: JobStatus
    processed: int
    total: int
    file_count: int
    errors: list[str]
    result_location: str | None
    total_size_bytes: int
    created_at: datetime
    started_at: datetime | None
    updated_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobStatusResponse":
        return cls(
            job_id=record.id,
            operation=record.operation,
            status=record.status,
            processed=record.processed,
            total=record.total,
            file_count=record.file_count,
            errors=list(record.errors),
            result_location=record.result_location,
            total_size_bytes=record.total_size_bytes,
            created_at=record.created_at,
            started_at=record.started_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
        )
