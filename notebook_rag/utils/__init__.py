"""Utility modules for notebook_rag.

- **errors** -- Domain exception hierarchy rooted at NotebookRAGError;
  each pipeline stage raises its own subclass so callers (and the HTTP
  error middleware) can handle failures at the right level.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from notebook_rag.utils.errors import (
    AudioOverviewExpiredError,
    ChatError,
    ConfigurationError,
    ExtractionError,
    NoActiveProviderError,
    NoEmbeddingProviderAvailableError,
    NoProcessedSourcesError,
    NotebookRAGError,
    NotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderUnavailableError,
    RateLimitError,
    RetrievalError,
    SourceBusyError,
    SourceFetchError,
    UnreadableSourceError,
    UnsupportedProviderError,
    UnsupportedSourceError,
    VectorStoreError,
)
from notebook_rag.utils.logging import configure_logging, get_logger

__all__ = [
    "AudioOverviewExpiredError",
    "ChatError",
    "ConfigurationError",
    "ExtractionError",
    "NoActiveProviderError",
    "NoEmbeddingProviderAvailableError",
    "NoProcessedSourcesError",
    "NotFoundError",
    "NotebookRAGError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderResponseError",
    "ProviderUnavailableError",
    "RateLimitError",
    "RetrievalError",
    "SourceBusyError",
    "SourceFetchError",
    "UnreadableSourceError",
    "UnsupportedProviderError",
    "UnsupportedSourceError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
]
