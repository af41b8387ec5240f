"""DeletePagesOperation — drop a set of pages from one document."""

from __future__ import annotations

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.instructions import DeleteInstruction
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.core.constants import OperationKind


def remaining_pages(count: int, pages_to_delete) -> list[int]:
    """
    Original indices left after deleting `pages_to_delete` from `count` pages.

    Removal runs highest index first, so deleting one page never shifts
    a page that is still waiting to be removed.  Out-of-range indices
    are ignored.
    """
    pages = list(range(count))
    for index in sorted(set(pages_to_delete), reverse=True):
        if pdf.is_valid_index(index, len(pages)):
            del pages[index]
    return pages


class DeletePagesOperation(DocumentOperation[DeleteInstruction]):
    """Remove pages from a single source document."""

    kind = OperationKind.DELETE
    description = "Delete pages from a PDF"

    async def execute(self, instruction: DeleteInstruction, ctx: OperationContext) -> InstructionOutcome:
        data = await ctx.fetch_source(instruction.source_file)

        writer = pdf.new_document()
        with pdf.open_document(data, name=instruction.source_file) as source:
            keep = remaining_pages(pdf.page_count(source), instruction.pages_to_delete)
            self._copy_indices(source, keep, writer)

        return InstructionOutcome(
            label=instruction.label,
            outputs=[self._output(instruction.output_name, writer)],
        )
