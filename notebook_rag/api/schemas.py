"""Pydantic request/response schemas for the notebook_rag API.

Request schemas end with ``Request``, response schemas with ``Response``.
Domain models (:class:`Notebook`, :class:`ChatMessage`,
:class:`ChatTurnResult`) are returned as-is where their shape is already
the public contract; sources and provider configs get dedicated response
models so extracted text and API keys never leave the server.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notebook_rag.models.chat import ChatMessage
from notebook_rag.models.notebook import AudioStatus, Source, SourceKind, SourceStatus
from notebook_rag.models.provider import ProviderConfig


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    status: str | None = Field(
        default=None,
        description="Generation status, reported alongside an expired audio URL.",
    )


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class AcceptedResponse(BaseModel):
    """Acknowledges that background work was submitted."""

    status: str
    message: str


class JobsResponse(BaseModel):
    """Snapshot of the background worker."""

    running: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


class NotebookCreateRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    icon: str | None = None
    color: str | None = None


class NotebookUpdateRequest(BaseModel):
    """Partial update; only the fields that are set are written."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    icon: str | None = None
    color: str | None = None


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TextSourceRequest(BaseModel):
    content: str = Field(min_length=1)
    title: str | None = None


class UrlSourceRequest(BaseModel):
    url: str = Field(min_length=1)
    kind: SourceKind = SourceKind.WEBSITE
    title: str | None = None


class SourceUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=500)


class SourceResponse(BaseModel):
    """Public view of a source; the extracted text is reported by length only."""

    id: str
    notebook_id: str
    kind: SourceKind
    title: str
    origin: str
    status: SourceStatus
    summary: str | None = None
    error: str | None = None
    text_length: int = 0
    created_at: datetime

    @classmethod
    def from_source(cls, source: Source) -> SourceResponse:
        return cls(
            id=source.id,
            notebook_id=source.notebook_id,
            kind=source.kind,
            title=source.title,
            origin=source.origin,
            status=source.status,
            summary=source.summary,
            error=source.error,
            text_length=len(source.extracted_text or ""),
            created_at=source.created_at,
        )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=10_000)


class ChatHistoryResponse(BaseModel):
    notebook_id: str
    messages: list[ChatMessage] = Field(default_factory=list)


class ClearHistoryResponse(BaseModel):
    notebook_id: str
    removed: int


# ---------------------------------------------------------------------------
# Audio overview
# ---------------------------------------------------------------------------


class AudioOverviewResponse(BaseModel):
    notebook_id: str
    status: AudioStatus | None = None
    url: str | None = None
    expires_at: datetime | None = None


# ---------------------------------------------------------------------------
# Provider configuration admin
# ---------------------------------------------------------------------------


class ProviderConfigCreateRequest(BaseModel):
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    api_key: str | None = None
    base_url: str | None = None
    is_active: bool = True
    is_default: bool = False
    extra_config: dict[str, Any] = Field(default_factory=dict)


class ProviderConfigUpdateRequest(BaseModel):
    provider: str | None = Field(default=None, min_length=1)
    model: str | None = Field(default=None, min_length=1)
    api_key: str | None = None
    base_url: str | None = None
    is_active: bool | None = None
    is_default: bool | None = None
    extra_config: dict[str, Any] | None = None


class ProviderConfigResponse(BaseModel):
    """A provider config with its API key masked."""

    id: int
    provider: str
    model: str
    api_key: str | None = Field(default=None, description="Masked; only the last 4 characters.")
    base_url: str | None = None
    is_active: bool
    is_default: bool
    extra_config: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_config(cls, config: ProviderConfig) -> ProviderConfigResponse:
        return cls(
            id=config.id,
            provider=config.provider,
            model=config.model,
            api_key=config.masked_api_key(),
            base_url=config.base_url,
            is_active=config.is_active,
            is_default=config.is_default,
            extra_config=config.extra_config,
        )
