"""API schema package."""

from pdfbatch.api.schemas.batches import BatchSubmitRequest, BatchSubmitResponse, JobStatusResponse

__all__ = ["BatchSubmitRequest", "BatchSubmitResponse", "JobStatusResponse"]
