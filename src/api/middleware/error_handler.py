"""
Global error handling middleware for the FastAPI application.

Catches DatasetRecorderError subclasses, Pydantic validation errors, and
unhandled exceptions, converting them into a consistent JSON envelope
``{detail, code, timestamp}``.

Codes the ingestion server emits:

    UPLOAD_REJECTED        400  upload without a ``video`` part, or path
                                fields that resolve outside the uploads folder
    PROFILE_INCOMPLETE     422  respondent name or age missing
    VALIDATION_ERROR       422  malformed body or query parameters
    PRECONDITION_FAILED    409  (and SESSION_ALREADY_ACTIVE,
                                RECONCILIATION_IN_PROGRESS)
    SENTENCES_UNAVAILABLE  503
    STORAGE_ERROR          500
    INTERNAL_ERROR         500  anything unexpected; no stack trace is sent
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.exceptions import DatasetRecorderError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application.

    Registers three handlers in priority order:
    1. ``DatasetRecorderError``: maps domain errors to structured JSON responses.
    2. ``RequestValidationError``: Pydantic validation failures (422).
    3. ``Exception``: catch-all for unexpected server errors (500).

    Args:
        app: The FastAPI application instance to register handlers on.
    """

    @app.exception_handler(DatasetRecorderError)
    async def domain_error_handler(_request: Request, exc: DatasetRecorderError) -> JSONResponse:
        """Convert domain-specific errors into a JSON error envelope."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "code": exc.code,
                "timestamp": exc.timestamp,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic request validation errors (malformed body/params)."""
        return JSONResponse(
            status_code=422,
            content={
                "detail": str(exc),
                "code": "VALIDATION_ERROR",
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler; prevents stack traces from leaking to clients."""
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "code": "INTERNAL_ERROR",
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
