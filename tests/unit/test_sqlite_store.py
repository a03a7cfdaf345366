"""Unit tests for SQLiteNotebookStore.

Uses a real SQLite database in ``tmp_path``.  Covers notebook CRUD, the
source claim compare-and-swap, the chat log ordering and the provider
config default-uniqueness rule.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from notebook_rag.models.chat import MessageRole
from notebook_rag.models.notebook import (
    AudioStatus,
    GenerationStatus,
    Source,
    SourceKind,
    SourceStatus,
)
from notebook_rag.providers.storage.sqlite_store import SQLiteNotebookStore


def _source(notebook_id: str, **overrides) -> Source:
    values = {
        "id": str(uuid.uuid4()),
        "notebook_id": notebook_id,
        "kind": SourceKind.TEXT,
        "title": "Notes",
        "content": "Some inline notes.",
    }
    values.update(overrides)
    return Source(**values)


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


class TestNotebooks:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store: SQLiteNotebookStore) -> None:
        created = await store.create_notebook(title="Research", color="blue")

        fetched = await store.get_notebook(created.id)

        assert fetched is not None
        assert fetched.title == "Research"
        assert fetched.color == "blue"
        assert fetched.generation_status == GenerationStatus.PENDING
        assert fetched.example_questions == []
        assert fetched.audio.url is None

    @pytest.mark.asyncio
    async def test_default_title(self, store: SQLiteNotebookStore) -> None:
        created = await store.create_notebook()
        assert created.title == "Untitled notebook"

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store: SQLiteNotebookStore) -> None:
        assert await store.get_notebook("does-not-exist") is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, store: SQLiteNotebookStore) -> None:
        first = await store.create_notebook(title="First")
        second = await store.create_notebook(title="Second")

        notebooks = await store.list_notebooks()

        assert [n.id for n in notebooks] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_update_fields(self, store: SQLiteNotebookStore) -> None:
        created = await store.create_notebook(title="Old")

        updated = await store.update_notebook(created.id, title="New", icon="📚")

        assert updated is not None
        assert updated.title == "New"
        assert updated.icon == "📚"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, store: SQLiteNotebookStore) -> None:
        created = await store.create_notebook()
        with pytest.raises(ValueError):
            await store.update_notebook(created.id, generation_status="completed")

    @pytest.mark.asyncio
    async def test_generated_content(self, store: SQLiteNotebookStore) -> None:
        created = await store.create_notebook()
        await store.set_generation_status(created.id, GenerationStatus.GENERATING)

        await store.save_generated_content(
            created.id,
            title="Photosynthesis",
            description="How plants make food.",
            icon="🌱",
            color="green",
            example_questions=["What is ATP?", "Where is the stroma?"],
        )

        notebook = await store.get_notebook(created.id)
        assert notebook.generation_status == GenerationStatus.COMPLETED
        assert notebook.example_questions == ["What is ATP?", "Where is the stroma?"]
        assert notebook.color == "green"

    @pytest.mark.asyncio
    async def test_delete_cascades(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id))
        await store.add_message(notebook.id, MessageRole.HUMAN, "hi")

        assert await store.delete_notebook(notebook.id) is True

        assert await store.get_notebook(notebook.id) is None
        assert await store.get_source(source.id) is None
        assert await store.list_messages(notebook.id) == []
        assert await store.delete_notebook(notebook.id) is False


# ---------------------------------------------------------------------------
# Audio descriptor
# ---------------------------------------------------------------------------


class TestAudio:
    @pytest.mark.asyncio
    async def test_save_refresh_clear(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        expires = datetime.now(tz=timezone.utc) + timedelta(hours=24)

        await store.set_audio_status(notebook.id, AudioStatus.GENERATING)
        assert (await store.get_notebook(notebook.id)).audio.status == AudioStatus.GENERATING

        await store.save_audio(notebook.id, url="/audio/x.mp3", script="Speaker 1: hi", expires_at=expires)
        audio = (await store.get_notebook(notebook.id)).audio
        assert audio.status == AudioStatus.COMPLETED
        assert audio.url == "/audio/x.mp3"
        assert audio.script == "Speaker 1: hi"
        assert audio.expires_at == expires

        later = expires + timedelta(hours=1)
        await store.update_audio_expiry(notebook.id, later)
        assert (await store.get_notebook(notebook.id)).audio.expires_at == later

        await store.clear_audio(notebook.id)
        audio = (await store.get_notebook(notebook.id)).audio
        assert audio.url is None
        assert audio.status is None


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TestSources:
    @pytest.mark.asyncio
    async def test_create_and_list_with_status_filter(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        first = await store.create_source(_source(notebook.id, title="A"))
        second = await store.create_source(_source(notebook.id, title="B"))
        await store.complete_source(second.id, extracted_text="text", summary="sum")

        all_sources = await store.list_sources(notebook.id)
        completed = await store.list_sources(notebook.id, status=SourceStatus.COMPLETED)

        assert [s.id for s in all_sources] == [first.id, second.id]
        assert [s.id for s in completed] == [second.id]
        assert completed[0].extracted_text == "text"
        assert completed[0].summary == "sum"

    @pytest.mark.asyncio
    async def test_claim_is_compare_and_swap(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id))

        assert await store.claim_source_for_processing(source.id) is True
        assert await store.claim_source_for_processing(source.id) is False
        assert (await store.get_source(source.id)).status == SourceStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_failed_source_is_claimable_and_error_cleared(
        self, store: SQLiteNotebookStore
    ) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id))
        await store.claim_source_for_processing(source.id)
        await store.fail_source(source.id, "HTTP 404")

        failed = await store.get_source(source.id)
        assert failed.status == SourceStatus.FAILED
        assert failed.error == "HTTP 404"

        assert await store.claim_source_for_processing(source.id) is True
        assert (await store.get_source(source.id)).error is None

    @pytest.mark.asyncio
    async def test_completed_source_not_claimable(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id))
        await store.complete_source(source.id, extracted_text="t", summary="s")

        assert await store.claim_source_for_processing(source.id) is False

    @pytest.mark.asyncio
    async def test_claim_missing_source(self, store: SQLiteNotebookStore) -> None:
        assert await store.claim_source_for_processing("nope") is False

    @pytest.mark.asyncio
    async def test_delete_source(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id))

        assert await store.delete_source(source.id) is True
        assert await store.delete_source(source.id) is False

    @pytest.mark.asyncio
    async def test_rename_source(self, store: SQLiteNotebookStore) -> None:
        notebook = await store.create_notebook()
        source = await store.create_source(_source(notebook.id, title="Draft"))
        await store.fail_source(source.id, "timeout")

        renamed = await store.rename_source(source.id, "Final")

        assert renamed is not None
        assert renamed.title == "Final"
        assert renamed.status == SourceStatus.FAILED
        assert renamed.error == "timeout"
        assert await store.rename_source("missing", "x") is None


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class TestStatistics:
    @pytest.mark.asyncio
    async def test_empty(self, store: SQLiteNotebookStore) -> None:
        assert await store.count_notebooks() == 0
        assert await store.count_sources_by_kind() == {}

    @pytest.mark.asyncio
    async def test_counts_across_notebooks(self, store: SQLiteNotebookStore) -> None:
        first = await store.create_notebook()
        second = await store.create_notebook()
        await store.create_source(_source(first.id))
        await store.create_source(_source(second.id))
        await store.create_source(
            _source(second.id, kind=SourceKind.WEBSITE, url="https://a.test", content=None)
        )

        assert await store.count_notebooks() == 2
        assert await store.count_sources_by_kind() == {"text": 2, "website": 1}


# ---------------------------------------------------------------------------
# Chat log
# ---------------------------------------------------------------------------


class TestChatLog:
    @pytest.mark.asyncio
    async def test_recent_messages_chronological(self, store: SQLiteNotebookStore) -> None:
        for i in range(5):
            await store.add_message("nb", MessageRole.HUMAN, f"m{i}")

        recent = await store.get_recent_messages("nb", limit=3)

        assert [m.content for m in recent] == ["m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_recent_messages_before_id(self, store: SQLiteNotebookStore) -> None:
        ids = [(await store.add_message("nb", MessageRole.HUMAN, f"m{i}")).id for i in range(4)]

        recent = await store.get_recent_messages("nb", limit=10, before_id=ids[2])

        assert [m.content for m in recent] == ["m0", "m1"]

    @pytest.mark.asyncio
    async def test_zero_limit(self, store: SQLiteNotebookStore) -> None:
        await store.add_message("nb", MessageRole.HUMAN, "m")
        assert await store.get_recent_messages("nb", limit=0) == []

    @pytest.mark.asyncio
    async def test_ai_message_provider_and_clear(self, store: SQLiteNotebookStore) -> None:
        await store.add_message("nb", MessageRole.HUMAN, "q")
        ai = await store.add_message(
            "nb", MessageRole.AI, '{"segments": [], "citations": []}', provider="openai", model="m"
        )
        await store.add_message("other", MessageRole.HUMAN, "untouched")

        assert ai.role == MessageRole.AI
        assert ai.provider == "openai"
        assert await store.clear_messages("nb") == 2
        assert await store.list_messages("nb") == []
        assert len(await store.list_messages("other")) == 1


# ---------------------------------------------------------------------------
# Provider configs
# ---------------------------------------------------------------------------


class TestProviderConfigs:
    @pytest.mark.asyncio
    async def test_create_and_count(self, store: SQLiteNotebookStore) -> None:
        assert await store.count_provider_configs() == 0

        config = await store.create_provider_config(
            provider="openai",
            model="gpt-4o-mini",
            api_key="sk-abcdef1234",
            extra_config={"temperature": 0.2},
        )

        assert config.id > 0
        assert config.extra_config == {"temperature": 0.2}
        assert config.masked_api_key() == "*********1234"
        assert await store.count_provider_configs() == 1

    @pytest.mark.asyncio
    async def test_single_default_on_create(self, store: SQLiteNotebookStore) -> None:
        first = await store.create_provider_config("openai", "a", is_default=True)
        second = await store.create_provider_config("ollama", "b", is_default=True)

        configs = {c.id: c for c in await store.list_provider_configs()}

        assert configs[first.id].is_default is False
        assert configs[second.id].is_default is True

    @pytest.mark.asyncio
    async def test_single_default_on_update(self, store: SQLiteNotebookStore) -> None:
        first = await store.create_provider_config("openai", "a", is_default=True)
        second = await store.create_provider_config("ollama", "b")

        await store.update_provider_config(second.id, is_default=True)

        defaults = [c.id for c in await store.list_provider_configs() if c.is_default]
        assert defaults == [second.id]
        assert first.id not in defaults

    @pytest.mark.asyncio
    async def test_active_prefers_default(self, store: SQLiteNotebookStore) -> None:
        await store.create_provider_config("openai", "a")
        default = await store.create_provider_config("anthropic", "b", is_default=True)
        await store.create_provider_config("gemini", "c", is_active=False, is_default=False)

        active = await store.get_active_provider_config()

        assert active.id == default.id

    @pytest.mark.asyncio
    async def test_active_filtered_by_provider(self, store: SQLiteNotebookStore) -> None:
        await store.create_provider_config("anthropic", "b", is_default=True)
        openai_cfg = await store.create_provider_config("openai", "a")

        assert (await store.get_active_provider_config(provider="openai")).id == openai_cfg.id
        assert await store.get_active_provider_config(provider="ollama") is None

    @pytest.mark.asyncio
    async def test_inactive_only_returns_none(self, store: SQLiteNotebookStore) -> None:
        await store.create_provider_config("openai", "a", is_active=False)
        assert await store.get_active_provider_config() is None

    @pytest.mark.asyncio
    async def test_update_and_delete(self, store: SQLiteNotebookStore) -> None:
        config = await store.create_provider_config("openai", "a")

        updated = await store.update_provider_config(config.id, model="b", is_active=False)

        assert updated.model == "b"
        assert updated.is_active is False
        assert await store.update_provider_config(9999, model="x") is None
        assert await store.delete_provider_config(config.id) is True
        assert await store.delete_provider_config(config.id) is False
