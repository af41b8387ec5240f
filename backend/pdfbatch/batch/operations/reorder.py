"""ReorderOperation — rebuild a document in an explicit page sequence."""

from __future__ import annotations

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.instructions import ReorderInstruction
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.core.constants import OperationKind


class ReorderOperation(DocumentOperation[ReorderInstruction]):
    """Copy pages in `new_page_order`; repeats and omissions are allowed."""

    kind = OperationKind.REORDER
    description = "Reorder the pages of a PDF"

    async def execute(self, instruction: ReorderInstruction, ctx: OperationContext) -> InstructionOutcome:
        data = await ctx.fetch_source(instruction.source_file)

        writer = pdf.new_document()
        with pdf.open_document(data, name=instruction.source_file) as source:
            self._copy_indices(source, instruction.new_page_order, writer)

        return InstructionOutcome(
            label=instruction.label,
            outputs=[self._output(instruction.output_name, writer)],
        )
