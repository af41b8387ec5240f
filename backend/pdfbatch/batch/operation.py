"""
DocumentOperation — abstract base class for every document operation.

One subclass per OperationKind.  The engine picks the operation for a
batch and calls execute() once per instruction; operations only
implement the page manipulation.  Raising an InstructionError (or any
other exception) fails that one instruction; soft problems go into the
returned outcome's sub_errors instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pdfbatch.batch import pdf
from pdfbatch.batch.context import InstructionOutcome, OperationContext, OutputFile
from pdfbatch.batch.instructions import output_entry_name
from pdfbatch.core.constants import OperationKind

I = TypeVar("I")


class DocumentOperation(ABC, Generic[I]):
    """
    Base class for every document operation.

    Subclasses MUST define:
        - kind (OperationKind)
        - description (str)   — human-readable label for logs
        - execute(instruction, ctx)
    """

    kind: OperationKind
    description: str = "No description"

    @abstractmethod
    async def execute(self, instruction: I, ctx: OperationContext) -> InstructionOutcome:
        """Run one instruction and return its outputs."""
        ...

    # ─── Helpers available to all operations ───────────

    def _output(self, name: str, writer) -> OutputFile:
        """Serialize a finished target document under its archive name."""
        return OutputFile(name=output_entry_name(name), data=pdf.serialize(writer))

    def _copy_indices(self, source, indices, writer) -> int:
        """Copy the in-range indices, in the given order.  Returns pages copied."""
        count = pdf.page_count(source)
        copied = 0
        for index in indices:
            if pdf.is_valid_index(index, count):
                pdf.copy_page(source, index, writer)
                copied += 1
        return copied
