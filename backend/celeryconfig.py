"""
Celery configuration for the batch workers.

Loaded by `celery_app.config_from_object("celeryconfig")` in pdfbatch/tasks/__init__.py.
Broker/result-backend URLs come from environment variables,
defaulting to localhost for local dev.
"""

import os

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# ═══════════════════════════════════════════════════════════
#  Serialization (JSON only)
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

# A redelivered batch would re-run a job that is already processing;
# the job record is the source of truth, so ack on receipt.
task_acks_late = False

# One batch at a time per worker process (batches are memory-heavy)
worker_prefetch_multiplier = 1

# The job deadline (JOB_TIMEOUT_SECONDS, 25 min) fails the job first;
# these only catch a wedged worker.
task_soft_time_limit = 1800
task_time_limit = 1860

# No Celery-level retries: per-fetch retries happen inside the batch
task_max_retries = 0

result_expires = 86400

# Recycle worker processes to bound PDF buffer fragmentation
worker_max_tasks_per_child = 50

worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
#   celery -A pdfbatch.tasks worker -Q batches

task_routes = {
    "pdfbatch.tasks.batch_tasks.*": {"queue": "batches"},
}

task_default_queue = "default"
