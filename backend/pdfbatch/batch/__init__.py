"""
Batch engine — chunked, fault-tolerant bulk PDF processing.

This package turns one submitted batch of instructions (merge, delete
pages, split, reorder, rename) into a single result archive, tracking
progress on a pollable job record.
"""

from pdfbatch.batch.archive import ArchiveAssembler
from pdfbatch.batch.context import BatchResult, InstructionOutcome, OperationContext, OutputFile
from pdfbatch.batch.document_engine import DocumentOpEngine
from pdfbatch.batch.job_record import JobRecord, JobStore, JobTracker
from pdfbatch.batch.runner import ChunkedBatchRunner
from pdfbatch.batch.service import BatchService

__all__ = [
    "ArchiveAssembler",
    "BatchResult",
    "BatchService",
    "ChunkedBatchRunner",
    "DocumentOpEngine",
    "InstructionOutcome",
    "JobRecord",
    "JobStore",
    "JobTracker",
    "OperationContext",
    "OutputFile",
]
