"""
ArchiveAssembler — streams every produced document into one ZIP.

Entries are compressed and written as soon as they are added, into a
spooled temporary file (memory up to ARCHIVE_SPOOL_MAX_BYTES, disk
after that), so the runner only ever holds one chunk's outputs in
memory.  Inputs are already-compressed PDFs, so a medium DEFLATE level
is used.

Name collisions: the second `report.pdf` is stored as `report_2.pdf`,
the third as `report_3.pdf`, and so on.  add() returns the final name.
"""

from __future__ import annotations

import os
import tempfile
import zipfile
from typing import BinaryIO

from pdfbatch.batch.errors import ArchiveError
from pdfbatch.core.config import settings
from pdfbatch.core.logging import get_logger

logger = get_logger(__name__)


class ArchiveAssembler:
    """Incremental ZIP builder keyed by sanitized output name."""

    def __init__(
        self,
        compression_level: int | None = None,
        spool_max_bytes: int | None = None,
    ) -> None:
        self._buffer = tempfile.SpooledTemporaryFile(
            max_size=spool_max_bytes or settings.ARCHIVE_SPOOL_MAX_BYTES,
        )
        self._zip = zipfile.ZipFile(
            self._buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level or settings.ARCHIVE_COMPRESSION_LEVEL,
        )
        self._names: set[str] = set()
        self._finalized = False
        self.total_bytes = 0

    @property
    def entry_count(self) -> int:
        return len(self._names)

    def _unique_name(self, name: str) -> str:
        if name not in self._names:
            return name
        stem, ext = os.path.splitext(name)
        suffix = 2
        while f"{stem}_{suffix}{ext}" in self._names:
            suffix += 1
        return f"{stem}_{suffix}{ext}"

    def add(self, name: str, data: bytes) -> str:
        """Compress one entry into the archive.  Returns the stored name."""
        if self._finalized:
            raise ArchiveError("Archive already finalized", label=name)

        entry_name = self._unique_name(name)
        if entry_name != name:
            logger.info("Duplicate output name renamed", requested=name, stored=entry_name)

        try:
            self._zip.writestr(entry_name, data)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            raise ArchiveError(f"Failed to add {entry_name} to archive: {exc}", label=entry_name) from exc

        self._names.add(entry_name)
        self.total_bytes += len(data)
        return entry_name

    def finalize(self) -> BinaryIO:
        """Write the central directory and return the archive, rewound."""
        if not self._finalized:
            try:
                self._zip.close()
            except (OSError, ValueError) as exc:
                raise ArchiveError(f"Failed to finalize archive: {exc}") from exc
            self._finalized = True
        self._buffer.seek(0)
        return self._buffer

    def close(self) -> None:
        """Discard the archive and release its buffer."""
        if not self._finalized:
            self._zip.close()
            self._finalized = True
        self._buffer.close()

    def __enter__(self) -> "ArchiveAssembler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
