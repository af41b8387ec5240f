"""
ChunkedBatchRunner — drives one batch from `processing` to a terminal state.

Responsibilities:
    - Move the job queued → processing before any instruction runs
    - Split the instruction list into fixed-size chunks, run sequentially
    - Run every instruction of a chunk concurrently in a task group;
      each task settles its own outcome so no failure cancels siblings
    - Apply results in original instruction order: archive outputs,
      collect soft/hard errors, persist `processed` after each one
    - Pause briefly between chunks to spare the storage API
    - Upload the archive and mark the job completed, or failed when the
      upload (or anything unexpected) blows up
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Sequence

from pdfbatch.batch.archive import ArchiveAssembler
from pdfbatch.batch.context import BatchResult, InstructionOutcome
from pdfbatch.batch.document_engine import DocumentOpEngine
from pdfbatch.batch.errors import InvalidJobTransitionError
from pdfbatch.batch.instructions import Instruction
from pdfbatch.batch.job_record import JobTracker
from pdfbatch.core.config import settings
from pdfbatch.core.constants import RESULT_ARCHIVE_NAME, ZIP_CONTENT_TYPE, JobStatus
from pdfbatch.core.logging import get_logger
from pdfbatch.storage.blob_store import BlobStore


def result_location(user_id: str, job_id: str) -> str:
    """Blob-store path of a job's result archive."""
    return f"{user_id}/{job_id}/{RESULT_ARCHIVE_NAME}"


def chunked(items: Sequence, size: int) -> list[Sequence]:
    """Consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


class ChunkedBatchRunner:
    """
    Usage::

        runner = ChunkedBatchRunner(engine, result_store=results)
        result = await runner.run(tracker, user_id="u1", instructions=batch)
    """

    def __init__(
        self,
        engine: DocumentOpEngine,
        *,
        result_store: BlobStore,
        chunk_size: int | None = None,
        chunk_pause: float | None = None,
        archive_factory: Callable[[], ArchiveAssembler] = ArchiveAssembler,
    ) -> None:
        self.engine = engine
        self.result_store = result_store
        self.chunk_size = chunk_size or settings.CHUNK_SIZE
        self.chunk_pause = (
            chunk_pause if chunk_pause is not None else settings.CHUNK_PAUSE_MS / 1000
        )
        self.archive_factory = archive_factory
        self.logger = get_logger("batch.runner")

    async def run(
        self,
        tracker: JobTracker,
        *,
        user_id: str,
        instructions: Sequence[Instruction],
    ) -> BatchResult:
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        chunks = chunked(instructions, self.chunk_size)
        errors = tracker.errors
        processed = 0
        total_size = 0
        location: str | None = None

        log = self.logger.bind(
            job_id=tracker.job_id,
            user_id=user_id,
            total=len(instructions),
            chunks=len(chunks),
        )
        log.info("Batch started", chunk_size=self.chunk_size)

        archive = self.archive_factory()
        try:
            await tracker.start()

            for chunk_index, chunk in enumerate(chunks):
                if tracker.is_terminal:
                    log.warning("Job already terminal, abandoning remaining chunks", chunk_index=chunk_index)
                    break

                settled = await self._run_chunk(chunk, log)

                # ── Apply in original instruction order ──
                for instruction, result in zip(chunk, settled):
                    if isinstance(result, InstructionOutcome):
                        for output in result.outputs:
                            archive.add(output.name, output.data)
                            total_size += output.size
                        errors.extend(result.sub_errors)
                    else:
                        errors.append(f"Failed to process {instruction.label}: {result}")
                    processed += 1
                    await tracker.record_progress(processed, total_size)

                log.info(
                    f"Chunk {chunk_index + 1}/{len(chunks)} settled",
                    processed=processed,
                    errors=len(errors),
                )

                if chunk_index < len(chunks) - 1:
                    await asyncio.sleep(self.chunk_pause)

            if not tracker.is_terminal:
                location = await self._persist(archive, tracker, user_id, errors, total_size, log)

        except InvalidJobTransitionError as exc:
            # Timeout guard already wrote the terminal state; outputs are discarded.
            log.warning("Runner lost ownership of job", error=str(exc))
        except Exception as exc:
            log.exception("Unexpected error in batch", error=str(exc))
            if not tracker.is_terminal:
                await tracker.fail(errors + [f"Unexpected error: {exc}"])
        finally:
            archive.close()

        completed_at = datetime.now(timezone.utc)
        duration_ms = int((time.monotonic() - t0) * 1000)
        result = BatchResult(
            job_id=tracker.job_id,
            status=tracker.status,
            total=len(instructions),
            processed=processed,
            entries=archive.entry_count,
            total_size_bytes=total_size,
            errors=list(tracker.errors),
            result_location=location if tracker.status == JobStatus.COMPLETED else None,
            started_at=started_at,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )

        log.info(
            "Batch metrics",
            status=result.status,
            processed=result.processed,
            entries=result.entries,
            total_size_bytes=result.total_size_bytes,
            error_count=len(result.errors),
            success=result.status == JobStatus.COMPLETED and not result.errors,
            duration_ms=duration_ms,
        )
        return result

    async def _run_chunk(self, chunk: Sequence[Instruction], log) -> list[InstructionOutcome | Exception]:
        """Run one chunk concurrently; results come back in chunk order."""
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(self._settle(instruction, log)) for instruction in chunk]
        return [task.result() for task in tasks]

    async def _settle(self, instruction: Instruction, log) -> InstructionOutcome | Exception:
        try:
            return await self.engine.execute(instruction)
        except Exception as exc:
            log.warning("Instruction failed", label=instruction.label, error=str(exc))
            return exc

    async def _persist(
        self,
        archive: ArchiveAssembler,
        tracker: JobTracker,
        user_id: str,
        errors: list[str],
        total_size: int,
        log,
    ) -> str | None:
        """
        Upload the archive, then write the terminal state.

        An upload already in flight when the deadline fires cannot be
        stopped; once it lands the orphaned archive is deleted again.
        """
        if tracker.is_terminal:
            return None

        location = result_location(user_id, tracker.job_id)
        try:
            payload = archive.finalize()
            await self.result_store.store(location, payload, ZIP_CONTENT_TYPE)
        except Exception as exc:
            log.error("Archive upload failed", error=str(exc))
            if not tracker.is_terminal:
                await tracker.fail(errors + [f"Failed to save results: {exc}"])
            return None

        if tracker.is_terminal:
            log.warning("Job ended during archive upload, discarding result", result_location=location)
            await self._discard(location, log)
            return None
        try:
            await tracker.complete(
                result_location=location,
                errors=errors,
                total_size_bytes=total_size,
            )
        except Exception:
            await self._discard(location, log)
            raise
        log.info("Batch completed", result_location=location, entries=archive.entry_count)
        return location

    async def _discard(self, location: str, log) -> None:
        try:
            await self.result_store.delete(location)
        except Exception as exc:
            # The job is already failed; a leftover object only costs storage.
            log.error("Failed to delete orphaned archive", result_location=location, error=str(exc))
