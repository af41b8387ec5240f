"""
Instructions — one declarative unit of work per document transformation.

A batch is an ordered, immutable list of instructions that all share the
same OperationKind.  Instructions are built from the submission payload
(camelCase keys, as produced by the upload UI / spreadsheet parser) by
parse_instructions(), which is also the place where required fields are
enforced.  Anything that reaches the runner is already well-formed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from pdfbatch.batch.errors import MissingFieldError, SubmissionError
from pdfbatch.core.constants import OperationKind

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """Strip path traversal and replace every unsafe character with '_'."""
    filename = filename.replace("..", "")
    return _UNSAFE_CHARS.sub("_", filename)


def ensure_pdf_extension(filename: str) -> str:
    """Append .pdf unless the name already ends with it."""
    return filename if filename.lower().endswith(".pdf") else f"{filename}.pdf"


def output_entry_name(filename: str) -> str:
    """Archive entry key for an output: sanitized, always .pdf."""
    return ensure_pdf_extension(sanitize_filename(filename))


def source_path(user_id: str, filename: str) -> str:
    """Blob-store path of an uploaded source document."""
    return f"{user_id}/{sanitize_filename(filename)}"


# ═══════════════════════════════════════════════════════════
#  Instruction variants
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MergeInstruction:
    source_files: tuple[str, ...]
    output_name: str

    kind = OperationKind.MERGE

    @property
    def label(self) -> str:
        return self.output_name


@dataclass(frozen=True)
class DeleteInstruction:
    source_file: str
    pages_to_delete: frozenset[int]
    output_name: str

    kind = OperationKind.DELETE

    @property
    def label(self) -> str:
        return self.output_name


@dataclass(frozen=True)
class PageRange:
    """Inclusive, 0-based page range."""

    start: int
    end: int


@dataclass(frozen=True)
class SplitInstruction:
    source_file: str
    page_ranges: tuple[PageRange, ...]
    output_names: tuple[str, ...]

    kind = OperationKind.SPLIT

    @property
    def label(self) -> str:
        return self.source_file

    def output_name_for(self, index: int) -> str:
        """Output name for range `index`, synthesized when not supplied."""
        if index < len(self.output_names) and self.output_names[index]:
            return self.output_names[index]
        return f"{self.source_file}_part{index + 1}.pdf"


@dataclass(frozen=True)
class ReorderInstruction:
    source_file: str
    new_page_order: tuple[int, ...]
    output_name: str

    kind = OperationKind.REORDER

    @property
    def label(self) -> str:
        return self.output_name


@dataclass(frozen=True)
class RenameInstruction:
    old_name: str
    new_name: str

    kind = OperationKind.RENAME

    @property
    def label(self) -> str:
        return self.new_name


Instruction = Union[
    MergeInstruction,
    DeleteInstruction,
    SplitInstruction,
    ReorderInstruction,
    RenameInstruction,
]


# ═══════════════════════════════════════════════════════════
#  Payload parsing
# ═══════════════════════════════════════════════════════════

def _require(raw: dict[str, Any], key: str, index: int) -> Any:
    if key not in raw or raw[key] is None:
        raise MissingFieldError(
            f"Instruction {index} is missing required field '{key}'",
            details={"instruction": index, "missingField": key},
        )
    return raw[key]


def _require_str(raw: dict[str, Any], key: str, index: int) -> str:
    value = _require(raw, key, index)
    if not isinstance(value, str) or not value.strip():
        raise SubmissionError(
            f"Instruction {index}: '{key}' must be a non-empty string",
            details={"instruction": index, "field": key},
        )
    return value


def _require_int_list(raw: dict[str, Any], key: str, index: int) -> list[int]:
    value = _require(raw, key, index)
    if not isinstance(value, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in value
    ):
        raise SubmissionError(
            f"Instruction {index}: '{key}' must be a list of integers",
            details={"instruction": index, "field": key},
        )
    return value


def _parse_merge(raw: dict[str, Any], index: int) -> MergeInstruction:
    sources = _require(raw, "sourceFiles", index)
    if not isinstance(sources, list) or not sources:
        raise SubmissionError(
            f"Instruction {index}: 'sourceFiles' must be a non-empty list",
            details={"instruction": index, "field": "sourceFiles"},
        )
    if not all(isinstance(s, str) and s for s in sources):
        raise SubmissionError(
            f"Instruction {index}: 'sourceFiles' must contain file names",
            details={"instruction": index, "field": "sourceFiles"},
        )
    return MergeInstruction(
        source_files=tuple(sources),
        output_name=_require_str(raw, "outputName", index),
    )


def _parse_delete(raw: dict[str, Any], index: int) -> DeleteInstruction:
    return DeleteInstruction(
        source_file=_require_str(raw, "sourceFile", index),
        pages_to_delete=frozenset(_require_int_list(raw, "pagesToDelete", index)),
        output_name=_require_str(raw, "outputName", index),
    )


def _parse_split(raw: dict[str, Any], index: int) -> SplitInstruction:
    ranges_raw = _require(raw, "pageRanges", index)
    if not isinstance(ranges_raw, list):
        raise SubmissionError(
            f"Instruction {index}: 'pageRanges' must be a list",
            details={"instruction": index, "field": "pageRanges"},
        )

    ranges: list[PageRange] = []
    for r in ranges_raw:
        try:
            ranges.append(PageRange(start=int(r["start"]), end=int(r["end"])))
        except (KeyError, TypeError, ValueError):
            raise SubmissionError(
                f"Instruction {index}: every page range needs integer 'start' and 'end'",
                details={"instruction": index, "field": "pageRanges"},
            ) from None

    names = raw.get("outputNames") or []
    if not isinstance(names, list):
        raise SubmissionError(
            f"Instruction {index}: 'outputNames' must be a list",
            details={"instruction": index, "field": "outputNames"},
        )

    return SplitInstruction(
        source_file=_require_str(raw, "sourceFile", index),
        page_ranges=tuple(ranges),
        output_names=tuple(str(n) if n else "" for n in names),
    )


def _parse_reorder(raw: dict[str, Any], index: int) -> ReorderInstruction:
    return ReorderInstruction(
        source_file=_require_str(raw, "sourceFile", index),
        new_page_order=tuple(_require_int_list(raw, "newPageOrder", index)),
        output_name=_require_str(raw, "outputName", index),
    )


def _parse_rename(raw: dict[str, Any], index: int) -> RenameInstruction:
    return RenameInstruction(
        old_name=_require_str(raw, "oldName", index),
        new_name=_require_str(raw, "newName", index),
    )


_PARSERS = {
    OperationKind.MERGE: _parse_merge,
    OperationKind.DELETE: _parse_delete,
    OperationKind.SPLIT: _parse_split,
    OperationKind.REORDER: _parse_reorder,
    OperationKind.RENAME: _parse_rename,
}


def parse_operation(operation: str) -> OperationKind:
    """Resolve the operation name, rejecting unknown kinds."""
    try:
        return OperationKind(operation)
    except ValueError:
        raise SubmissionError(
            f"Unknown operation: {operation}",
            details={"operation": operation, "allowed": [k.value for k in OperationKind]},
        ) from None


def parse_instructions(
    operation: OperationKind | str,
    raw_instructions: Any,
) -> list[Instruction]:
    """
    Build typed instructions from the submission payload.

    Raises SubmissionError (or MissingFieldError) for an empty list, a
    non-list payload, or any instruction with a missing/ill-typed field.
    """
    kind = parse_operation(operation) if isinstance(operation, str) else operation

    if not isinstance(raw_instructions, list):
        raise SubmissionError(
            "'instructions' must be an array",
            details={"field": "instructions"},
        )
    if not raw_instructions:
        raise SubmissionError(
            "Instruction list is empty",
            details={"field": "instructions"},
        )

    parser = _PARSERS[kind]
    instructions: list[Instruction] = []
    for index, raw in enumerate(raw_instructions):
        if not isinstance(raw, dict):
            raise SubmissionError(
                f"Instruction {index} must be an object",
                details={"instruction": index},
            )
        instructions.append(parser(raw, index))
    return instructions


def count_units(instructions: list[Instruction]) -> int:
    """
    Size of a batch for the per-job cap.

    Merge batches are counted by total source files (every source is one
    download); every other kind by instruction count.
    """
    return sum(
        len(i.source_files) if isinstance(i, MergeInstruction) else 1
        for i in instructions
    )
