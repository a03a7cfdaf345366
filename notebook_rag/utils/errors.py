"""Custom exception hierarchy for notebook_rag.

All application exceptions inherit from :class:`NotebookRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "website") caused the failure.

The hierarchy is organized by pipeline stage:

    NotebookRAGError  (base -- catch-all for any notebook_rag error)
    +-- ExtractionError              (source -> plain text)
    |   +-- SourceFetchError         (network failure fetching a URL)
    |   +-- UnreadableSourceError    (missing file, corrupt or undecodable bytes)
    |   +-- UnsupportedSourceError   (unknown source kind or container format)
    +-- ProviderError                (any LLM / embedding backend failure)
    |   +-- ProviderAuthError        (credentials rejected)
    |   +-- RateLimitError           (provider rate-limit exceeded)
    |   +-- ProviderUnavailableError (backend unreachable / timed out)
    |   +-- ProviderResponseError    (empty or malformed response)
    |   +-- UnsupportedProviderError (no adapter registered for the provider)
    +-- RetrievalError               (embedding or vector query failure on search)
    +-- VectorStoreError             (vector store write / delete failure)
    +-- ChatError                    (a chat turn could not be answered)
    |   +-- NoProcessedSourcesError  (notebook has no completed source)
    +-- ConfigurationError           (invalid settings / no usable provider)
    |   +-- NoActiveProviderError
    |   +-- NoEmbeddingProviderAvailableError
    +-- NotFoundError                (unknown notebook / source / config id)
    +-- SourceBusyError              (another ingestion attempt holds the source)
    +-- AudioOverviewExpiredError    (audio URL past its expiry window)

Network, auth and "bad response" failures are distinct classes so callers
can tell "try again later" apart from "fix the configuration".
"""


class NotebookRAGError(Exception):
    """Base exception for all notebook_rag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(NotebookRAGError):
    """Raised when a source cannot be converted into plain text."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceFetchError(ExtractionError):
    """Raised when fetching a remote source fails (timeout, HTTP status, DNS)."""

    def __init__(
        self,
        message: str = "Could not fetch source",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnreadableSourceError(ExtractionError):
    """Raised when a stored file is missing, corrupt, or cannot be decoded."""

    def __init__(
        self,
        message: str = "Source could not be read",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedSourceError(ExtractionError):
    """Raised for a source kind or file format the extractor does not handle."""

    def __init__(
        self,
        message: str = "Unsupported source type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# LLM / embedding provider errors
# ---------------------------------------------------------------------------

class ProviderError(NotebookRAGError):
    """Raised when an LLM or embedding API call fails."""

    def __init__(
        self,
        message: str = "Provider API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderAuthError(ProviderError):
    """Raised when the provider rejects the configured credentials."""

    def __init__(
        self,
        message: str = "Provider rejected the credentials",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(ProviderError):
    """Raised when an API rate limit is exceeded.

    Callers should back off or switch the default provider when this is
    caught; nothing in the core retries automatically.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ProviderError):
    """Raised when the provider cannot be reached (connection error, timeout)."""

    def __init__(
        self,
        message: str = "Provider is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderResponseError(ProviderError):
    """Raised when the provider answers with an empty or malformed payload."""

    def __init__(
        self,
        message: str = "Provider returned an empty or invalid response",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedProviderError(ProviderError):
    """Raised when a provider config names a backend with no registered adapter."""

    def __init__(
        self,
        message: str = "Unsupported provider",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Retrieval / vector-store errors
# ---------------------------------------------------------------------------

class RetrievalError(NotebookRAGError):
    """Raised when similarity search fails (query embedding or vector query)."""

    def __init__(
        self,
        message: str = "Retrieval failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(NotebookRAGError):
    """Raised when writing to or deleting from the vector store fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Chat errors
# ---------------------------------------------------------------------------

class ChatError(NotebookRAGError):
    """Raised when a chat turn cannot be answered."""

    def __init__(
        self,
        message: str = "Chat request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoProcessedSourcesError(ChatError):
    """Raised when a notebook has no source with status ``completed``."""

    def __init__(
        self,
        message: str = "Notebook has no processed sources",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(NotebookRAGError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoActiveProviderError(ConfigurationError):
    """Raised when no provider config is marked active."""

    def __init__(
        self,
        message: str = "No active LLM provider is configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoEmbeddingProviderAvailableError(ConfigurationError):
    """Raised when neither the active provider nor an OpenAI config can embed."""

    def __init__(
        self,
        message: str = "No embedding-capable provider is configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Resource state errors
# ---------------------------------------------------------------------------

class NotFoundError(NotebookRAGError):
    """Raised when a notebook, source, or provider config does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceBusyError(NotebookRAGError):
    """Raised when a source is already being processed by another attempt."""

    def __init__(
        self,
        message: str = "Source is already being processed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AudioOverviewExpiredError(NotebookRAGError):
    """Raised when the audio overview URL is past its expiry time.

    ``status`` carries the generation status so the API can report it
    alongside the expiry.
    """

    def __init__(
        self,
        message: str = "Audio overview URL has expired",
        provider_name: str | None = None,
        status: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status = status

    @property
    def status(self) -> str | None:
        return self._status
