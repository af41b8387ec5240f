"""
Document operations — one DocumentOperation subclass per OperationKind.

To add an operation:
    1. Add the kind to OperationKind and an instruction parser
    2. Implement a DocumentOperation subclass here
    3. Register it in OPERATION_REGISTRY
"""

from pdfbatch.batch.operations.delete_pages import DeletePagesOperation
from pdfbatch.batch.operations.merge import MergeOperation
from pdfbatch.batch.operations.rename import RenameOperation
from pdfbatch.batch.operations.reorder import ReorderOperation
from pdfbatch.batch.operations.split import SplitOperation
from pdfbatch.core.constants import OperationKind

OPERATION_REGISTRY = {
    OperationKind.MERGE: MergeOperation,
    OperationKind.DELETE: DeletePagesOperation,
    OperationKind.SPLIT: SplitOperation,
    OperationKind.REORDER: ReorderOperation,
    OperationKind.RENAME: RenameOperation,
}

__all__ = [
    "OPERATION_REGISTRY",
    "MergeOperation",
    "DeletePagesOperation",
    "SplitOperation",
    "ReorderOperation",
    "RenameOperation",
]
