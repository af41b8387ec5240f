"""
Blob stores — where uploads are read from and result archives written to.

The engine depends only on the BlobStore contract:
    fetch(path)                    -> bytes, or None when the object is absent
    store(path, data, content_type)
    delete(path)                   -> no-op when the object is absent

S3BlobStore talks to S3/MinIO through boto3 (blocking client, so calls
are pushed to a worker thread).  LocalBlobStore maps paths onto a
directory tree; it is what local development runs against.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import BinaryIO, Protocol

import boto3
from botocore.exceptions import ClientError

from pdfbatch.batch.errors import StorageError
from pdfbatch.core.config import settings
from pdfbatch.core.logging import get_logger

logger = get_logger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class BlobStore(Protocol):
    """Key-value blob storage contract."""

    async def fetch(self, path: str) -> bytes | None: ...

    async def store(self, path: str, data: bytes | BinaryIO, content_type: str) -> None: ...

    async def delete(self, path: str) -> None: ...


# ═══════════════════════════════════════════════════════════
#  S3 / MinIO
# ═══════════════════════════════════════════════════════════

class S3BlobStore:
    """One bucket on S3 or an S3-compatible endpoint."""

    def __init__(self, bucket: str, client=None) -> None:
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            endpoint_url=settings.STORAGE_ENDPOINT or None,
            aws_access_key_id=settings.STORAGE_ACCESS_KEY,
            aws_secret_access_key=settings.STORAGE_SECRET_KEY,
            region_name=settings.STORAGE_REGION,
        )

    def _get(self, path: str) -> bytes | None:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return None
            raise StorageError(f"Failed to download {path}: {exc}", label=path) from exc
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()

    def _put(self, path: str, data: bytes | BinaryIO, content_type: str) -> None:
        try:
            if isinstance(data, (bytes, bytearray)):
                self._client.put_object(
                    Bucket=self.bucket, Key=path, Body=data, ContentType=content_type,
                )
            else:
                self._client.upload_fileobj(
                    data, self.bucket, path, ExtraArgs={"ContentType": content_type},
                )
        except ClientError as exc:
            raise StorageError(f"Failed to upload {path}: {exc}", label=path) from exc

    def _delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}", label=path) from exc

    async def fetch(self, path: str) -> bytes | None:
        return await asyncio.to_thread(self._get, path)

    async def store(self, path: str, data: bytes | BinaryIO, content_type: str) -> None:
        await asyncio.to_thread(self._put, path, data, content_type)
        logger.info("Object stored", bucket=self.bucket, path=path, content_type=content_type)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._delete, path)
        logger.info("Object deleted", bucket=self.bucket, path=path)


# ═══════════════════════════════════════════════════════════
#  Local filesystem
# ═══════════════════════════════════════════════════════════

class LocalBlobStore:
    """Stores objects as files under `root` (paths are relative keys)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise StorageError(f"Path escapes storage root: {path}", label=path)
        return target

    async def fetch(self, path: str) -> bytes | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}", label=path) from exc

    async def store(self, path: str, data: bytes | BinaryIO, content_type: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            payload = data if isinstance(data, (bytes, bytearray)) else data.read()
            target.write_bytes(payload)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}", label=path) from exc
        logger.info("Object stored", root=str(self.root), path=path, content_type=content_type)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}", label=path) from exc
        logger.info("Object deleted", root=str(self.root), path=path)


def build_blob_stores() -> tuple[BlobStore, BlobStore]:
    """(uploads, results) stores for the configured STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "local":
        return (
            LocalBlobStore(os.path.join(settings.STORAGE_LOCAL_ROOT, settings.STORAGE_UPLOADS_BUCKET)),
            LocalBlobStore(os.path.join(settings.STORAGE_LOCAL_ROOT, settings.STORAGE_RESULTS_BUCKET)),
        )
    return (
        S3BlobStore(settings.STORAGE_UPLOADS_BUCKET),
        S3BlobStore(settings.STORAGE_RESULTS_BUCKET),
    )
