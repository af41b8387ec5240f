"""
Shared fixtures: in-memory collaborators and generated PDFs.

Pages are told apart by mediabox width: page i of a generated document
is (100 + i) points wide, so an output's page order can be read back
with page_widths().
"""

from __future__ import annotations

import io
import uuid
from typing import Any, BinaryIO

import pytest
from pypdf import PdfReader, PdfWriter

from pdfbatch.batch.context import OperationContext
from pdfbatch.batch.job_record import JobRecord
from pdfbatch.batch.retry import RetryPolicy


# ═══════════════════════════════════════════════════════════
#  PDF helpers
# ═══════════════════════════════════════════════════════════

def make_pdf(pages: int, *, base_width: int = 100) -> bytes:
    writer = PdfWriter()
    for i in range(pages):
        writer.add_blank_page(width=base_width + i, height=100)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_widths(data: bytes) -> list[int]:
    reader = PdfReader(io.BytesIO(data))
    return [int(float(page.mediabox.width)) for page in reader.pages]


# ═══════════════════════════════════════════════════════════
#  Fakes
# ═══════════════════════════════════════════════════════════

class InMemoryBlobStore:
    """BlobStore fake.  `failures[path] = n` makes the next n fetches raise."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.content_types: dict[str, str] = {}
        self.failures: dict[str, int] = {}
        self.fetch_calls: list[str] = []
        self.deleted: list[str] = []

    async def fetch(self, path: str) -> bytes | None:
        self.fetch_calls.append(path)
        if self.failures.get(path, 0) > 0:
            self.failures[path] -= 1
            raise ConnectionError(f"transient error reading {path}")
        return self.objects.get(path)

    async def store(self, path: str, data: bytes | BinaryIO, content_type: str) -> None:
        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        self.objects[path] = bytes(payload)
        self.content_types[path] = content_type

    async def delete(self, path: str) -> None:
        self.deleted.append(path)
        self.objects.pop(path, None)


class FailingBlobStore(InMemoryBlobStore):
    """Every store() call fails."""

    async def store(self, path: str, data: bytes | BinaryIO, content_type: str) -> None:
        raise ConnectionError("storage unavailable")


class InMemoryJobStore:
    """JobStore fake that keeps every update for inspection."""

    def __init__(self) -> None:
        self.jobs: dict[str, JobRecord] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def insert(self, job: JobRecord) -> str:
        job_id = job.id or str(uuid.uuid4())
        self.jobs[job_id] = job.copy(id=job_id)
        return job_id

    async def update(self, job_id: str, fields: dict[str, Any]) -> None:
        self.updates.append((job_id, dict(fields)))
        current = self.jobs[job_id]
        self.jobs[job_id] = current.copy(**fields)

    async def get(self, job_id: str) -> JobRecord | None:
        job = self.jobs.get(job_id)
        return job.copy() if job is not None else None

    def processed_history(self, job_id: str) -> list[int]:
        return [f["processed"] for jid, f in self.updates if jid == job_id and "processed" in f]


class FailingJobStore(InMemoryJobStore):
    """Raises on any update that would write `fail_on_status`."""

    def __init__(self, fail_on_status: str) -> None:
        super().__init__()
        self.fail_on_status = fail_on_status

    async def update(self, job_id: str, fields: dict[str, Any]) -> None:
        if fields.get("status") == self.fail_on_status:
            raise ConnectionError("database unavailable")
        await super().update(job_id, fields)


# ═══════════════════════════════════════════════════════════
#  Fixtures
# ═══════════════════════════════════════════════════════════

USER_ID = "user-1"

NO_WAIT_RETRY = RetryPolicy(max_retries=3, delay=0, backoff_multiplier=2.0)


@pytest.fixture
def uploads() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def results() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def ctx(uploads: InMemoryBlobStore) -> OperationContext:
    return OperationContext(
        user_id=USER_ID,
        fetch=uploads.fetch,
        retry_policy=NO_WAIT_RETRY,
        max_file_size=50 * 1024 * 1024,
        job_id="job-1",
    )


def upload(store: InMemoryBlobStore, name: str, data: bytes) -> None:
    store.objects[f"{USER_ID}/{name}"] = data
