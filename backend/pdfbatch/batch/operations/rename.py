"""
RenameOperation — re-issue a document under a new name.

Pages are copied into a fresh document so no stale metadata survives,
then title/producer/creator are set best-effort.
"""

from __future__ import annotations

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.instructions import RenameInstruction
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.core.constants import OperationKind


def title_from_name(name: str) -> str:
    """Document title: the new name without its .pdf extension."""
    base = name[:-4] if name.lower().endswith(".pdf") else name
    return base.strip()


class RenameOperation(DocumentOperation[RenameInstruction]):
    """Copy every page under `new_name` with clean metadata."""

    kind = OperationKind.RENAME
    description = "Rename a PDF and reset its metadata"

    async def execute(self, instruction: RenameInstruction, ctx: OperationContext) -> InstructionOutcome:
        data = await ctx.fetch_source(instruction.old_name)

        writer = pdf.new_document()
        with pdf.open_document(data, name=instruction.old_name) as source:
            pdf.copy_all_pages(source, writer)

        try:
            pdf.set_metadata(
                writer,
                title=title_from_name(instruction.new_name),
                producer=ctx.producer,
                creator=ctx.producer,
            )
        except Exception as exc:
            ctx.logger.warning("Failed to set PDF metadata", output=instruction.new_name, error=str(exc))

        return InstructionOutcome(
            label=instruction.label,
            outputs=[self._output(instruction.new_name, writer)],
        )
