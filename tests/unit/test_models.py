"""Unit tests for domain models, error mapping and configuration loading."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from notebook_rag.api.middleware import status_code_for
from notebook_rag.config.loader import load_config
from notebook_rag.config.settings import Settings
from notebook_rag.models.chat import (
    AnswerSegment,
    ChatMessage,
    Citation,
    CitedAnswer,
    MessageRole,
)
from notebook_rag.models.notebook import AudioOverview, Source, SourceKind
from notebook_rag.models.provider import ChatOptions, ProviderConfig
from notebook_rag.models.rag import DocumentChunk, RetrievedChunk
from notebook_rag.utils.errors import (
    AudioOverviewExpiredError,
    ChatError,
    NoActiveProviderError,
    NoProcessedSourcesError,
    NotebookRAGError,
    NotFoundError,
    ProviderAuthError,
    RetrievalError,
    SourceBusyError,
    SourceFetchError,
    UnsupportedSourceError,
    VectorStoreError,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestChatMessage:
    def test_human_plain_text(self) -> None:
        message = ChatMessage(id=1, session_id="nb", role=MessageRole.HUMAN, content="hello")
        assert message.plain_text() == "hello"

    def test_ai_plain_text_joins_segments(self) -> None:
        answer = CitedAnswer(
            segments=[AnswerSegment(text="One.", citation_id=1), AnswerSegment(text="Two.")],
            citations=[Citation(citation_id=1, source_id="s")],
        )
        message = ChatMessage(
            id=2, session_id="nb", role=MessageRole.AI, content=answer.model_dump_json()
        )
        assert message.plain_text() == "One.\n\nTwo."

    def test_ai_plain_text_tolerates_raw_text(self) -> None:
        message = ChatMessage(id=3, session_id="nb", role=MessageRole.AI, content="not json")
        assert message.plain_text() == "not json"

    def test_citation_id_is_one_based(self) -> None:
        with pytest.raises(ValidationError):
            Citation(citation_id=0, source_id="s")


class TestSource:
    def test_origin(self) -> None:
        base = {"id": "s", "notebook_id": "n", "title": "t"}
        assert Source(kind=SourceKind.TEXT, content="x", **base).origin == "inline"
        assert Source(kind=SourceKind.PDF, file_path="/f.pdf", **base).origin == "/f.pdf"
        assert Source(kind=SourceKind.WEBSITE, url="https://a.b", **base).origin == "https://a.b"
        assert Source(kind=SourceKind.PDF, **base).origin == ""

    def test_models_are_frozen(self) -> None:
        source = Source(id="s", notebook_id="n", kind=SourceKind.TEXT, title="t")
        with pytest.raises(ValidationError):
            source.title = "changed"


class TestAudioOverview:
    def test_no_expiry_never_expires(self) -> None:
        assert AudioOverview().is_expired() is False

    def test_expiry(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        audio = AudioOverview(url="/audio/a.mp3", expires_at=now)
        assert audio.is_expired(now=now + timedelta(seconds=1)) is True
        assert audio.is_expired(now=now - timedelta(seconds=1)) is False


class TestProviderModels:
    @pytest.mark.parametrize(
        ("api_key", "expected"),
        [(None, None), ("", None), ("abc", "***"), ("sk-12345678", "*******5678")],
    )
    def test_masked_api_key(self, api_key: str | None, expected: str | None) -> None:
        config = ProviderConfig(id=1, provider="openai", model="m", api_key=api_key)
        assert config.masked_api_key() == expected

    def test_chat_options_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ChatOptions(temperature=2.5)
        with pytest.raises(ValidationError):
            ChatOptions(max_tokens=0)


class TestRagModels:
    def test_similarity_keeps_negative_scores(self) -> None:
        chunk = DocumentChunk(
            chunk_id="c",
            text="t",
            notebook_id="n",
            source_id="s",
            source_title="Doc",
            source_kind="text",
            chunk_index=0,
        )
        assert RetrievedChunk(chunk=chunk, similarity=1.0).similarity == 1.0
        assert RetrievedChunk(chunk=chunk, similarity=-0.25).similarity == -0.25

    def test_chunk_index_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            DocumentChunk(
                chunk_id="c",
                text="t",
                notebook_id="n",
                source_id="s",
                source_title="Doc",
                source_kind="text",
                chunk_index=-1,
            )


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_str_prefixes_provider(self) -> None:
        assert str(ProviderAuthError(message="bad key", provider_name="openai")) == (
            "[openai] bad key"
        )
        assert str(NotFoundError(message="gone")) == "gone"

    def test_expired_error_carries_status(self) -> None:
        exc = AudioOverviewExpiredError(message="expired", status="completed")
        assert exc.status == "completed"

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (NotFoundError(), 404),
            (SourceBusyError(), 409),
            (AudioOverviewExpiredError(), 410),
            (NoProcessedSourcesError(), 422),
            (UnsupportedSourceError(), 422),
            (SourceFetchError(), 422),
            (ChatError(), 503),
            (ProviderAuthError(), 502),
            (RetrievalError(), 502),
            (NoActiveProviderError(), 503),
            (VectorStoreError(), 500),
            (NotebookRAGError(), 500),
        ],
    )
    def test_status_code_mapping(self, exc: NotebookRAGError, status: int) -> None:
        assert status_code_for(exc) == status


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestSettings:
    def test_bootstrap_order(self) -> None:
        settings = Settings(
            _env_file=None,
            openai_api_key="sk-o",
            anthropic_api_key="sk-a",
            gemini_api_key="g",
            ollama_base_url="",
        )
        assert settings.get_bootstrap_providers() == ["anthropic", "openai", "gemini"]

    def test_ollama_needs_no_key(self) -> None:
        settings = Settings(
            _env_file=None,
            openai_api_key="",
            anthropic_api_key="",
            gemini_api_key="",
            ollama_base_url="http://localhost:11434",
        )
        assert settings.get_bootstrap_providers() == ["ollama"]

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHUNK_SIZE", "640")
        assert Settings(_env_file=None).chunk_size == 640


class TestLoadConfig:
    def test_yaml_merged_with_settings(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "cors:\n  allowed_origins: ['http://localhost:3000']\n"
            "retrieval:\n  top_k: 99\n  extra: kept\n",
            encoding="utf-8",
        )
        settings = Settings(_env_file=None, retrieval_top_k=7)

        config = load_config(str(path), settings=settings)

        assert config["cors"]["allowed_origins"] == ["http://localhost:3000"]
        assert config["retrieval"]["top_k"] == 7
        assert config["retrieval"]["extra"] == "kept"
        assert config["storage"]["database_path"] == settings.database_path

    def test_missing_file(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=Settings(_env_file=None))
        assert config["app"]["port"] == Settings(_env_file=None).app_port
