"""
Thin adapter over pypdf.

The engine treats the PDF library as a black box with exactly three
capabilities: load a document from bytes, copy page N into a target
document, serialize a document to bytes.  Everything page-tree related
goes through this module so operations never touch pypdf directly.
"""

from __future__ import annotations

import io
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from pdfbatch.batch.errors import DocumentLoadError


@contextmanager
def open_document(data: bytes, *, name: str | None = None) -> Iterator[PdfReader]:
    """
    Load a PDF from bytes for the duration of the block.

    Encrypted documents with an empty user password are opened
    transparently; anything unreadable raises DocumentLoadError.
    """
    stream = io.BytesIO(data)
    try:
        try:
            reader = PdfReader(stream, strict=False)
            if reader.is_encrypted:
                reader.decrypt("")
            len(reader.pages)
        except (PdfReadError, ValueError, KeyError, TypeError) as exc:
            raise DocumentLoadError(f"Could not read PDF: {exc}", label=name) from exc
        yield reader
    finally:
        stream.close()


def new_document() -> PdfWriter:
    """Empty target document."""
    return PdfWriter()


def page_count(document: PdfReader | PdfWriter) -> int:
    return len(document.pages)


def is_valid_index(index: int, count: int) -> bool:
    return 0 <= index < count


def copy_page(source: PdfReader, index: int, target: PdfWriter) -> None:
    """Append page `index` of source to target (the same page may be copied twice)."""
    target.add_page(source.pages[index])


def copy_all_pages(source: PdfReader, target: PdfWriter) -> int:
    """Append every page of source, in order.  Returns the number copied."""
    for index in range(page_count(source)):
        copy_page(source, index, target)
    return page_count(source)


def set_metadata(
    target: PdfWriter,
    *,
    title: str,
    producer: str,
    creator: str,
    modified_at: datetime | None = None,
) -> None:
    """Replace descriptive metadata fields on the target document."""
    modified_at = modified_at or datetime.now(timezone.utc)
    target.add_metadata({
        "/Title": title,
        "/Producer": producer,
        "/Creator": creator,
        "/ModDate": modified_at.strftime("D:%Y%m%d%H%M%S+00'00'"),
    })


def serialize(target: PdfWriter) -> bytes:
    buffer = io.BytesIO()
    target.write(buffer)
    return buffer.getvalue()
