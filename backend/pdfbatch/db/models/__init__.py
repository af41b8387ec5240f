"""
Models package — re-exports Base and all models.

Import models here so `Base.metadata.create_all` picks up every table.

When adding a new model:
    1. Create `pdfbatch/db/models/<table_name>.py`
    2. Import it here
"""

from pdfbatch.db.models.base import Base
from pdfbatch.db.models.processing_job import ProcessingJob

__all__ = [
    "Base",
    "ProcessingJob",
]
