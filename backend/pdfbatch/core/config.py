"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "pdfbatch_user"
    POSTGRES_PASSWORD: str = "pdfbatch_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "pdfbatch_db"

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Redis / Celery ────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── File Storage ──────────────────────────
    STORAGE_BACKEND: str = "s3"              # s3 | local
    STORAGE_ENDPOINT: str = "http://localhost:9000"
    STORAGE_ACCESS_KEY: str = "minioadmin"
    STORAGE_SECRET_KEY: str = "minioadmin"
    STORAGE_REGION: str = "us-east-1"
    STORAGE_UPLOADS_BUCKET: str = "pdf-uploads"
    STORAGE_RESULTS_BUCKET: str = "pdf-results"
    STORAGE_LOCAL_ROOT: str = "/tmp/pdfbatch"

    # ── Batch limits ──────────────────────────
    MAX_OPERATIONS_PER_JOB: int = 200
    MAX_BATCH_SIZE_BYTES: int = 500 * 1024 * 1024
    MAX_FILE_SIZE_BYTES: int = 50 * 1024 * 1024
    CHUNK_SIZE: int = 10
    CHUNK_PAUSE_MS: int = 100
    JOB_TIMEOUT_SECONDS: float = 25 * 60     # host ceiling is 30 min

    # ── Retry ─────────────────────────────────
    RETRY_MAX_RETRIES: int = 3
    RETRY_DELAY_MS: int = 1000
    RETRY_BACKOFF_MULTIPLIER: float = 2.0

    # ── Archive ───────────────────────────────
    ARCHIVE_COMPRESSION_LEVEL: int = 6
    ARCHIVE_SPOOL_MAX_BYTES: int = 64 * 1024 * 1024

    # ── Rate limiting ─────────────────────────
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 60 * 60

    # ── PDF metadata ──────────────────────────
    PDF_PRODUCER: str = "Bulk PDF Processor"

    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
