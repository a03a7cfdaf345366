"""Abstract base classes for relational notebook storage.

Two contracts live here because one SQLite file backs both in the default
deployment:

* :class:`INotebookStore` -- notebooks, sources, the chat log and the
  audio-overview descriptor.
* :class:`IProviderConfigStore` -- LLM provider configuration rows.

Every status transition is a single-row write, and no method performs
network I/O while a transaction is open.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from notebook_rag.models.chat import ChatMessage, MessageRole
from notebook_rag.models.notebook import (
    AudioStatus,
    GenerationStatus,
    Notebook,
    Source,
    SourceStatus,
)
from notebook_rag.models.provider import ProviderConfig


# Concrete implementation: SQLiteNotebookStore (notebook_rag/providers/storage/)
class INotebookStore(ABC):
    """Contract for notebook, source and chat-log persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema if it does not exist yet."""

    # -- Notebooks ---------------------------------------------------------

    @abstractmethod
    async def create_notebook(
        self,
        title: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
    ) -> Notebook:
        """Insert a new notebook with ``generation_status = pending``."""

    @abstractmethod
    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        """Return the notebook or ``None`` when it does not exist."""

    @abstractmethod
    async def list_notebooks(self) -> list[Notebook]:
        """Return all notebooks, newest first."""

    @abstractmethod
    async def update_notebook(self, notebook_id: str, **fields: Any) -> Notebook | None:
        """Update any of ``title``, ``description``, ``icon``, ``color``.

        Returns the updated notebook, or ``None`` when it does not exist.
        """

    @abstractmethod
    async def delete_notebook(self, notebook_id: str) -> bool:
        """Delete a notebook with its sources and messages.

        Returns ``True`` if a row was deleted.  Vector chunks are not the
        store's concern; callers purge them separately.
        """

    @abstractmethod
    async def set_generation_status(self, notebook_id: str, status: GenerationStatus) -> None:
        """Set the title/summary generation status."""

    @abstractmethod
    async def save_generated_content(
        self,
        notebook_id: str,
        title: str,
        description: str,
        icon: str,
        color: str,
        example_questions: list[str],
    ) -> None:
        """Store generated notebook content and mark generation completed."""

    # -- Audio overview ----------------------------------------------------

    @abstractmethod
    async def set_audio_status(self, notebook_id: str, status: AudioStatus) -> None:
        """Set the audio-overview status without touching url/expiry."""

    @abstractmethod
    async def save_audio(
        self,
        notebook_id: str,
        url: str,
        script: str,
        expires_at: datetime,
    ) -> None:
        """Store a rendered audio overview and mark it completed."""

    @abstractmethod
    async def update_audio_expiry(self, notebook_id: str, expires_at: datetime) -> None:
        """Move the audio-overview expiry."""

    @abstractmethod
    async def clear_audio(self, notebook_id: str) -> None:
        """Reset every audio-overview field to ``NULL``."""

    # -- Sources -----------------------------------------------------------

    @abstractmethod
    async def create_source(self, source: Source) -> Source:
        """Insert *source* as given and return it."""

    @abstractmethod
    async def get_source(self, source_id: str) -> Source | None:
        """Return the source or ``None`` when it does not exist."""

    @abstractmethod
    async def list_sources(
        self,
        notebook_id: str,
        status: SourceStatus | None = None,
    ) -> list[Source]:
        """Return a notebook's sources in creation order, optionally by status."""

    @abstractmethod
    async def claim_source_for_processing(self, source_id: str) -> bool:
        """Atomically move a source from ``pending`` or ``failed`` to ``processing``.

        Returns
        -------
        bool
            ``True`` if this caller won the claim; ``False`` if the source is
            missing or another attempt already holds or finished it.
        """

    @abstractmethod
    async def complete_source(self, source_id: str, extracted_text: str, summary: str) -> None:
        """Persist extraction output and set ``status = completed`` in one update."""

    @abstractmethod
    async def fail_source(self, source_id: str, error: str) -> None:
        """Set ``status = failed`` and record *error*."""

    @abstractmethod
    async def rename_source(self, source_id: str, title: str) -> Source | None:
        """Set a source's title.  Returns the updated source or ``None``."""

    @abstractmethod
    async def delete_source(self, source_id: str) -> bool:
        """Delete a source row.  Returns ``True`` if a row was deleted."""

    # -- Statistics --------------------------------------------------------

    @abstractmethod
    async def count_notebooks(self) -> int:
        """Return the number of notebooks."""

    @abstractmethod
    async def count_sources_by_kind(self) -> dict[str, int]:
        """Return source counts keyed by source kind, omitting absent kinds."""

    # -- Chat log ----------------------------------------------------------

    @abstractmethod
    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> ChatMessage:
        """Append a message to a notebook's chat log and return it."""

    @abstractmethod
    async def get_recent_messages(
        self,
        session_id: str,
        limit: int,
        before_id: int | None = None,
    ) -> list[ChatMessage]:
        """Return up to *limit* most recent messages in chronological order.

        When *before_id* is given only messages with a smaller id count.
        """

    @abstractmethod
    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        """Return the full chat log in chronological order."""

    @abstractmethod
    async def clear_messages(self, session_id: str) -> int:
        """Delete a notebook's chat log.  Returns the number of rows removed."""


class IProviderConfigStore(ABC):
    """Contract for LLM provider configuration persistence.

    At most one row carries ``is_default``; writes that set it clear it on
    every other row in the same transaction.
    """

    @abstractmethod
    async def list_provider_configs(self) -> list[ProviderConfig]:
        """Return every configuration row ordered by id."""

    @abstractmethod
    async def get_provider_config(self, config_id: int) -> ProviderConfig | None:
        """Return one row or ``None``."""

    @abstractmethod
    async def get_active_provider_config(
        self,
        provider: str | None = None,
    ) -> ProviderConfig | None:
        """Return the active row to dispatch to, default rows first.

        When *provider* is given only rows for that backend are considered.
        """

    @abstractmethod
    async def create_provider_config(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        is_active: bool = True,
        is_default: bool = False,
        extra_config: dict[str, Any] | None = None,
    ) -> ProviderConfig:
        """Insert a configuration row and return it."""

    @abstractmethod
    async def update_provider_config(self, config_id: int, **fields: Any) -> ProviderConfig | None:
        """Update the given columns; returns ``None`` when the row does not exist."""

    @abstractmethod
    async def delete_provider_config(self, config_id: int) -> bool:
        """Delete a row.  Returns ``True`` if it existed."""

    @abstractmethod
    async def count_provider_configs(self) -> int:
        """Return the number of configuration rows."""
