"""API middleware: CORS, request logging and error handling.

Starlette middleware is a stack (last added, first executed).  In main.py:

    app.add_middleware(ErrorHandlingMiddleware)   # inner
    app.add_middleware(RequestLoggingMiddleware)  # outermost

so the request log records the final status code, including the ones
produced by the error handler.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from notebook_rag.api.schemas import ErrorResponse
from notebook_rag.utils.errors import (
    AudioOverviewExpiredError,
    ChatError,
    ConfigurationError,
    ExtractionError,
    NoProcessedSourcesError,
    NotebookRAGError,
    NotFoundError,
    ProviderError,
    RetrievalError,
    SourceBusyError,
)
from notebook_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First matching class wins; subclasses must precede their bases.
_STATUS_BY_ERROR: list[tuple[type[NotebookRAGError], int]] = [
    (NotFoundError, 404),
    (SourceBusyError, 409),
    (AudioOverviewExpiredError, 410),
    (NoProcessedSourcesError, 422),
    (ChatError, 503),
    (ExtractionError, 422),
    (ProviderError, 502),
    (RetrievalError, 502),
    (ConfigurationError, 503),
]


def status_code_for(exc: NotebookRAGError) -> int:
    """Return the HTTP status for a domain error; 500 when unmapped."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins are allowed unless a list is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``NotebookRAGError`` subclasses into structured JSON errors.

    The client sees the exception class name and message; stack traces
    are logged server-side only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except NotebookRAGError as exc:
            status_code = status_code_for(exc)
            log = _logger.error if status_code >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
                exc_info=status_code == 500,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
                status=exc.status if isinstance(exc, AudioOverviewExpiredError) else None,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(exclude_none=True),
            )
