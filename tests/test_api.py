"""HTTP surface: submit and poll, with the Celery dispatch patched out."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import InMemoryBlobStore, InMemoryJobStore
from pdfbatch.api import deps
from pdfbatch.api.v1 import batches
from pdfbatch.batch.rate_limit import RateLimiter
from pdfbatch.batch.service import BatchService
from pdfbatch.main import app

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def job_store():
    return InMemoryJobStore()


@pytest.fixture
def dispatch(monkeypatch):
    task = MagicMock()
    monkeypatch.setattr(batches, "process_batch", task)
    return task


@pytest.fixture
def client(job_store, dispatch):
    service = BatchService(
        job_store, InMemoryBlobStore(), InMemoryBlobStore(),
        rate_limiter=RateLimiter(max_requests=3, window_seconds=3600),
        max_operations=5,
    )
    app.dependency_overrides[deps.get_job_store] = lambda: job_store
    app.dependency_overrides[deps.get_batch_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_submit_returns_job_id_and_dispatches(client, dispatch, job_store):
    instructions = [{"oldName": "a.pdf", "newName": "b.pdf"}]
    response = client.post(
        "/api/v1/batches",
        json={"operation": "rename", "instructions": instructions},
        headers=HEADERS,
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "queued"
    job_id = body["jobId"]
    assert job_store.jobs[job_id].user_id == "user-1"
    dispatch.delay.assert_called_once_with(job_id, "user-1", "rename", instructions)


def test_poll_returns_job_record(client):
    job_id = client.post(
        "/api/v1/batches",
        json={"operation": "merge", "instructions": [{"sourceFiles": ["a", "b"], "outputName": "ab"}]},
        headers=HEADERS,
    ).json()["jobId"]

    response = client.get(f"/api/v1/batches/{job_id}", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["jobId"] == job_id
    assert body["status"] == "queued"
    assert body["processed"] == 0
    assert body["total"] == 1
    assert body["fileCount"] == 2
    assert body["errors"] == []
    assert body["resultLocation"] is None


def test_poll_unknown_job_is_404(client):
    response = client.get("/api/v1/batches/does-not-exist", headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "JOB_NOT_FOUND"


def test_poll_other_users_job_is_404(client):
    job_id = client.post(
        "/api/v1/batches",
        json={"operation": "rename", "instructions": [{"oldName": "a", "newName": "b"}]},
        headers=HEADERS,
    ).json()["jobId"]

    response = client.get(f"/api/v1/batches/{job_id}", headers={"X-User-Id": "someone-else"})
    assert response.status_code == 404


def test_missing_user_header_is_401(client):
    response = client.post("/api/v1/batches", json={"operation": "rename", "instructions": []})
    assert response.status_code == 401


@pytest.mark.parametrize(
    ("payload", "status", "code"),
    [
        ({"operation": "rename", "instructions": []}, 400, "INVALID_REQUEST"),
        ({"operation": "rotate", "instructions": [{"a": 1}]}, 400, "INVALID_REQUEST"),
        ({"operation": "rename", "instructions": [{"oldName": "a"}]}, 400, "MISSING_PARAMS"),
        ({"instructions": [{"oldName": "a", "newName": "b"}]}, 400, "INVALID_REQUEST"),
        (
            {"operation": "rename", "instructions": [{"oldName": "a", "newName": "b"}] * 6},
            413,
            "BATCH_TOO_LARGE",
        ),
        (
            {
                "operation": "rename",
                "instructions": [{"oldName": "a", "newName": "b"}],
                "estimatedSizeBytes": 600 * 1024 * 1024,
            },
            413,
            "BATCH_TOO_LARGE",
        ),
    ],
)
def test_submission_errors_use_error_envelope(client, dispatch, job_store, payload, status, code):
    response = client.post("/api/v1/batches", json=payload, headers=HEADERS)

    assert response.status_code == status
    assert response.json()["error"]["code"] == code
    assert job_store.jobs == {}
    dispatch.delay.assert_not_called()


def test_rate_limit_is_429(client):
    payload = {"operation": "rename", "instructions": [{"oldName": "a", "newName": "b"}]}
    for _ in range(3):
        assert client.post("/api/v1/batches", json=payload, headers=HEADERS).status_code == 202

    response = client.post("/api/v1/batches", json=payload, headers=HEADERS)
    assert response.status_code == 429
    assert "retryAfter" in response.json()["error"]["details"]


def test_dispatch_failure_fails_the_job(client, dispatch, job_store):
    dispatch.delay.side_effect = ConnectionError("broker down")

    response = client.post(
        "/api/v1/batches",
        json={"operation": "rename", "instructions": [{"oldName": "a", "newName": "b"}]},
        headers=HEADERS,
    )

    assert response.status_code == 202
    job = job_store.jobs[response.json()["jobId"]]
    assert job.status == "failed"
    assert job.errors == ["Failed to dispatch job: broker down"]
