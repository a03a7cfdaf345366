"""LLM provider configuration and call models.

:class:`ProviderConfig` mirrors one row of the ``provider_configs`` table.
Exactly the rows with ``is_active`` are eligible for dispatch; at most one
row has ``is_default`` and it wins when several are active.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):  # noqa: UP042
    """Backends with a registered adapter."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OLLAMA = "ollama"


class ProviderConfig(BaseModel):
    """One configured LLM backend.

    ``provider`` is kept as a plain string so rows naming a backend with no
    adapter can still be loaded and reported as unsupported at dispatch.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    provider: str = Field(description="Backend name, e.g. 'openai' or 'ollama'.")
    model: str = Field(description="Model identifier passed to the backend.")
    api_key: str | None = None
    base_url: str | None = None
    is_active: bool = True
    is_default: bool = False
    extra_config: dict[str, Any] = Field(
        default_factory=dict,
        description="Stored option overrides applied after caller options.",
    )

    def masked_api_key(self) -> str | None:
        """Return the API key with everything but the last four characters hidden."""
        if not self.api_key:
            return None
        if len(self.api_key) <= 4:
            return "*" * len(self.api_key)
        return "*" * (len(self.api_key) - 4) + self.api_key[-4:]


class LLMMessage(BaseModel):
    """Provider-neutral chat message sent to an adapter."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class ChatOptions(BaseModel):
    """Resolved sampling options for one call."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)


class ChatCompletion(BaseModel):
    """Normalized adapter result: text plus which backend produced it."""

    model_config = ConfigDict(frozen=True)

    text: str
    provider: str
    model: str
