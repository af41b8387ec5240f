"""
MergeOperation — concatenate several uploads into one document.

Sources that are missing, too large or unreadable are skipped and
reported as one soft error; the merge only fails outright when not a
single page could be collected.
"""

from __future__ import annotations

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.errors import (
    InstructionError,
    NoValidPagesError,
    SourceTooLargeError,
)
from pdfbatch.batch.instructions import MergeInstruction, output_entry_name
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.core.constants import OperationKind


class MergeOperation(DocumentOperation[MergeInstruction]):
    """Merge source documents, in order, into a single output."""

    kind = OperationKind.MERGE
    description = "Merge source PDFs into one document"

    async def execute(self, instruction: MergeInstruction, ctx: OperationContext) -> InstructionOutcome:
        if not instruction.source_files:
            raise InstructionError(
                "Merge needs at least one source file",
                job_id=ctx.job_id,
                label=instruction.label,
            )

        log = ctx.logger.bind(output=instruction.output_name)
        writer = pdf.new_document()
        missing: list[str] = []
        pages_added = 0

        for filename in instruction.source_files:
            try:
                data = await ctx.try_fetch_source(filename)
            except SourceTooLargeError:
                missing.append(f"{filename} (exceeds size limit)")
                continue
            except Exception as exc:
                log.warning("Source fetch failed", source=filename, error=str(exc))
                missing.append(filename)
                continue

            if data is None:
                missing.append(filename)
                continue

            try:
                with pdf.open_document(data, name=filename) as source:
                    pages_added += pdf.copy_all_pages(source, writer)
            except Exception as exc:
                log.warning("Source could not be merged", source=filename, error=str(exc))
                missing.append(filename)

        if pages_added == 0:
            raise NoValidPagesError(
                "No valid pages to merge",
                job_id=ctx.job_id,
                label=instruction.label,
                details={"missing": missing},
            )

        outcome = InstructionOutcome(
            label=instruction.label,
            outputs=[self._output(instruction.output_name, writer)],
        )
        if missing:
            outcome.sub_errors.append(
                f"Output {output_entry_name(instruction.output_name)}: "
                f"missing {len(missing)} file(s): {', '.join(missing)}"
            )

        log.debug("Merge built", pages=pages_added, missing=len(missing))
        return outcome
