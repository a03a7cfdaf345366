"""Notebook and source models.

A :class:`Notebook` is the aggregate root: it owns sources, their chunks
(transitively, through the vector store), the chat log and one audio
overview descriptor.  All models are frozen; state transitions are
persisted by the storage layer and re-read, never mutated in place.

Status fields are the read model pollers use to follow background jobs:
``pending``/``processing``/``generating`` mean "try later", ``completed``
means done and ``failed`` means "resubmit".
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------
class SourceKind(str, Enum):  # noqa: UP042
    """Kinds of documents a notebook can ingest."""

    PDF = "pdf"
    TEXT = "text"
    WEBSITE = "website"
    YOUTUBE = "youtube"
    AUDIO = "audio"


class SourceStatus(str, Enum):  # noqa: UP042
    """Ingestion state of a source.

    ``pending -> processing -> completed | failed``.  A failed source can be
    claimed again only by an explicit re-submission.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationStatus(str, Enum):  # noqa: UP042
    """State of the notebook title/summary generation job."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class AudioStatus(str, Enum):  # noqa: UP042
    """State of the audio-overview generation job."""

    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# URL-based sources may only be one of these kinds.
URL_SOURCE_KINDS = frozenset({SourceKind.WEBSITE, SourceKind.YOUTUBE})


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------
class Source(BaseModel):
    """One ingested document, URL, or inline text belonging to a notebook."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this source.")
    notebook_id: str = Field(description="Owning notebook.")
    kind: SourceKind = Field(description="Source kind, selects the extractor.")
    title: str = Field(description="Human-readable title shown in citations.")
    file_path: str | None = Field(default=None, description="Stored file for uploads.")
    url: str | None = Field(default=None, description="Remote URL for website/youtube.")
    content: str | None = Field(default=None, description="Inline text submitted directly.")
    status: SourceStatus = Field(default=SourceStatus.PENDING)
    extracted_text: str | None = Field(default=None, description="Plain text after extraction.")
    summary: str | None = Field(default=None, description="LLM summary (<= 200 words).")
    error: str | None = Field(default=None, description="Last failure message, if any.")
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))  # noqa: UP017

    @property
    def origin(self) -> str:
        """Return where the text comes from: file path, url, or ``"inline"``."""
        if self.content is not None:
            return "inline"
        return self.file_path or self.url or ""


# ---------------------------------------------------------------------------
# Audio overview
# ---------------------------------------------------------------------------
class AudioOverview(BaseModel):
    """Audio overview descriptor stored on the notebook row."""

    model_config = ConfigDict(frozen=True)

    status: AudioStatus | None = None
    url: str | None = None
    expires_at: datetime | None = None
    script: str | None = Field(default=None, description="Two-speaker script sent to the renderer.")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return ``True`` when an expiry is set and lies in the past."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(tz=timezone.utc)  # noqa: UP017
        return self.expires_at < now


# ---------------------------------------------------------------------------
# Notebook
# ---------------------------------------------------------------------------
class Notebook(BaseModel):
    """A user-owned collection of sources, chat history and derived summaries."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Untitled notebook"
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    example_questions: list[str] = Field(default_factory=list)
    generation_status: GenerationStatus = GenerationStatus.PENDING
    audio: AudioOverview = Field(default_factory=AudioOverview)
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))  # noqa: UP017
