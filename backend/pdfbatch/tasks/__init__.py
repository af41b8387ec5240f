"""
Celery application factory.
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from pdfbatch.core.config import settings
from pdfbatch.core.logging import setup_logging

celery_app = Celery("pdfbatch")
celery_app.config_from_object("celeryconfig")


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    """Use structlog in workers instead of Celery's own logging setup."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")


# Auto-discover tasks in these modules
celery_app.autodiscover_tasks([
    "pdfbatch.tasks.batch_tasks",
])
