"""notebook_rag API layer: routes, schemas and middleware."""

from notebook_rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from notebook_rag.api.routes import router
from notebook_rag.api.schemas import (
    AudioOverviewResponse,
    ChatRequest,
    ErrorResponse,
    HealthResponse,
    NotebookCreateRequest,
    SourceResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "AudioOverviewResponse",
    "ChatRequest",
    "ErrorResponse",
    "HealthResponse",
    "NotebookCreateRequest",
    "SourceResponse",
]
