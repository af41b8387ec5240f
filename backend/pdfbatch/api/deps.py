"""Shared dependencies for API routes."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from pdfbatch.batch.job_record import JobStore
from pdfbatch.batch.rate_limit import RateLimiter
from pdfbatch.batch.service import BatchService
from pdfbatch.db.session import async_session
from pdfbatch.repositories.jobs import SqlJobStore
from pdfbatch.storage.blob_store import BlobStore, build_blob_stores

# One limiter per API process.
rate_limiter = RateLimiter()


@lru_cache
def _blob_stores() -> tuple[BlobStore, BlobStore]:
    return build_blob_stores()


def get_job_store() -> JobStore:
    """JobStore over the shared session factory."""
    return SqlJobStore(async_session)


def get_batch_service(job_store: JobStore = Depends(get_job_store)) -> BatchService:
    uploads, results = _blob_stores()
    return BatchService(job_store, uploads, results, rate_limiter=rate_limiter)


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the authenticating gateway in front of the API."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()
