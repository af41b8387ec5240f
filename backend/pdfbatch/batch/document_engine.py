"""
DocumentOpEngine — runs exactly one instruction against stored sources.

Picks the DocumentOperation for the instruction's kind and executes it
with a shared OperationContext.  Does not catch anything: the runner is
the one place where per-instruction failures become error strings.
"""

from __future__ import annotations

from pdfbatch.batch.context import InstructionOutcome, OperationContext
from pdfbatch.batch.instructions import Instruction
from pdfbatch.batch.operation import DocumentOperation
from pdfbatch.batch.operations import OPERATION_REGISTRY
from pdfbatch.core.constants import OperationKind


class DocumentOpEngine:
    """
    Usage::

        engine = DocumentOpEngine(OperationContext(user_id="u1", fetch=store.fetch))
        outcome = await engine.execute(MergeInstruction(("a.pdf", "b.pdf"), "ab.pdf"))
    """

    def __init__(self, ctx: OperationContext) -> None:
        self.ctx = ctx
        self._operations: dict[OperationKind, DocumentOperation] = {}

    def operation_for(self, kind: OperationKind) -> DocumentOperation:
        if kind not in self._operations:
            try:
                self._operations[kind] = OPERATION_REGISTRY[kind]()
            except KeyError:
                raise ValueError(f"Unknown operation: {kind}") from None
        return self._operations[kind]

    async def execute(self, instruction: Instruction) -> InstructionOutcome:
        operation = self.operation_for(instruction.kind)
        return await operation.execute(instruction, self.ctx)
