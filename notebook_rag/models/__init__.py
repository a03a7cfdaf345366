"""Pydantic data models for notebook_rag.

All models are frozen (immutable) pydantic v2 models.  Re-exports the
types used across services, providers and the API layer.
"""

from notebook_rag.models.admin import OllamaModel, SystemStats
from notebook_rag.models.chat import (
    AnswerSegment,
    ChatMessage,
    ChatTurnResult,
    Citation,
    CitedAnswer,
    MessageRole,
)
from notebook_rag.models.notebook import (
    URL_SOURCE_KINDS,
    AudioOverview,
    AudioStatus,
    GenerationStatus,
    Notebook,
    Source,
    SourceKind,
    SourceStatus,
)
from notebook_rag.models.provider import (
    ChatCompletion,
    ChatOptions,
    LLMMessage,
    ProviderConfig,
    ProviderKind,
)
from notebook_rag.models.rag import DocumentChunk, IngestionResult, RetrievedChunk

__all__ = [
    "URL_SOURCE_KINDS",
    "AnswerSegment",
    "AudioOverview",
    "AudioStatus",
    "ChatCompletion",
    "ChatMessage",
    "ChatOptions",
    "ChatTurnResult",
    "Citation",
    "CitedAnswer",
    "DocumentChunk",
    "GenerationStatus",
    "IngestionResult",
    "LLMMessage",
    "MessageRole",
    "OllamaModel",
    "Notebook",
    "ProviderConfig",
    "ProviderKind",
    "RetrievedChunk",
    "Source",
    "SystemStats",
    "SourceKind",
    "SourceStatus",
]
