"""Operator-facing models: deployment statistics and local model listings."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SystemStats(BaseModel):
    """Counts across every notebook."""

    model_config = ConfigDict(frozen=True)

    total_notebooks: int = Field(ge=0)
    total_sources: int = Field(ge=0)
    total_chunks: int = Field(ge=0, description="Chunks held by the vector store.")
    source_kinds: dict[str, int] = Field(
        default_factory=dict,
        description="Source count per source kind; kinds with no sources are omitted.",
    )


class OllamaModel(BaseModel):
    """One model installed on an Ollama server, as reported by ``/api/tags``."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int | None = None
    digest: str | None = None
    modified_at: datetime | None = None
    details: dict[str, Any] = Field(default_factory=dict)
