"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdfbatch.api.v1 import batches
from pdfbatch.batch.errors import SubmissionError
from pdfbatch.core.config import settings
from pdfbatch.core.constants import ErrorCode
from pdfbatch.core.logging import get_logger, setup_logging
from pdfbatch.db.session import init_models


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    logger = get_logger("startup")
    await init_models()
    logger.info("Application starting", env=settings.APP_ENV)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Bulk PDF Processor API",
    description="Chunked batch processing of PDF merge, split, delete, reorder and rename jobs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error envelope ───────────────────────────────────────
@app.exception_handler(SubmissionError)
async def submission_error_handler(request: Request, exc: SubmissionError) -> JSONResponse:
    get_logger("api.errors").info(
        "Submission rejected", code=exc.code.value, message=str(exc), path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": {
            "code": ErrorCode.INVALID_REQUEST.value,
            "message": "Invalid request body",
            "details": {"errors": jsonable_errors(exc)},
        }},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


API_PREFIX = "/api/v1"
app.include_router(batches.router, prefix=API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Public health-check endpoint."""
    return {"status": "ok", "env": settings.APP_ENV}
