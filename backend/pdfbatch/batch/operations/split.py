"""
SplitOperation — cut one document into several page ranges.

Each range is built independently: a range that fails is reported as a
soft error and the remaining ranges still produce their outputs.
"""

from __future__ import annotations

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.errors import NoValidPagesError
from pdfbatch.batch.instructions import PageRange, SplitInstruction, output_entry_name
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.core.constants import OperationKind


def clamped_range(page_range: PageRange, count: int) -> range:
    """Inclusive range clamped to [0, count); empty when nothing is in bounds."""
    lo = max(page_range.start, 0)
    hi = min(page_range.end, count - 1)
    return range(lo, hi + 1)


class SplitOperation(DocumentOperation[SplitInstruction]):
    """Produce one output per inclusive page range."""

    kind = OperationKind.SPLIT
    description = "Split a PDF into page ranges"

    async def execute(self, instruction: SplitInstruction, ctx: OperationContext) -> InstructionOutcome:
        data = await ctx.fetch_source(instruction.source_file)
        outcome = InstructionOutcome(label=instruction.label)
        log = ctx.logger.bind(source=instruction.source_file)

        with pdf.open_document(data, name=instruction.source_file) as source:
            count = pdf.page_count(source)
            for index, page_range in enumerate(instruction.page_ranges):
                name = instruction.output_name_for(index)
                try:
                    writer = pdf.new_document()
                    self._copy_indices(source, clamped_range(page_range, count), writer)
                    outcome.outputs.append(self._output(name, writer))
                except Exception as exc:
                    log.warning("Split range failed", range_index=index, output=name, error=str(exc))
                    outcome.sub_errors.append(
                        f"Failed to build {output_entry_name(name)}: {exc}"
                    )

        if instruction.page_ranges and not outcome.outputs:
            raise NoValidPagesError(
                "; ".join(outcome.sub_errors) or "No range could be built",
                job_id=ctx.job_id,
                label=instruction.label,
            )
        return outcome
