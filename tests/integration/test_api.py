"""Integration tests for the notebook_rag API endpoints using TestClient.

The app is assembled the way ``main._build_all`` does it, but with a
temporary SQLite store, the in-memory vector store and a mocked LLM
service.  Background jobs run on the TestClient's event loop; tests wait
for them through ``client.portal.call(runner.drain)``.
"""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from notebook_rag.api.middleware import ErrorHandlingMiddleware
from notebook_rag.api.routes import router as api_router
from notebook_rag.config.settings import Settings
from notebook_rag.pipeline.task_runner import BackgroundTaskRunner
from notebook_rag.providers.audio.placeholder_renderer import PlaceholderAudioRenderer
from notebook_rag.providers.registry import ProviderRegistry, default_variants
from notebook_rag.providers.storage.sqlite_store import SQLiteNotebookStore
from notebook_rag.services.admin_service import AdminService
from notebook_rag.services.audio_overview_service import AudioOverviewService
from notebook_rag.services.chat_service import ChatService
from notebook_rag.services.ingestion import IngestionService, TextChunker, TextExtractor
from notebook_rag.services.llm_service import LLMService
from notebook_rag.services.notebook_service import NotebookService
from notebook_rag.utils.errors import ProviderUnavailableError
from tests.conftest import MockVectorStore, make_completion

_API = "/api/v1"

_OLLAMA_BASE_URL = "http://ollama.test:11434"

_OLLAMA_TAGS = {
    "models": [
        {
            "name": "llama3.1:8b",
            "model": "llama3.1:8b",
            "size": 4920753328,
            "digest": "46e0c10c039e",
            "modified_at": "2026-01-05T10:00:00Z",
            "details": {"family": "llama", "parameter_size": "8.0B"},
        }
    ]
}


def _ollama_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/tags":
        return httpx.Response(200, json=_OLLAMA_TAGS)
    return httpx.Response(404)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(tmp_path) -> tuple[FastAPI, dict]:
    """Create a FastAPI app with real services over test doubles."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(api_router)

    store = SQLiteNotebookStore(db_path=tmp_path / "api.db")
    registry = ProviderRegistry(
        config_store=store, variants=default_variants(Settings(_env_file=None))
    )
    vector_store = MockVectorStore()
    llm_service = MagicMock(spec=LLMService)
    llm_service.chat = AsyncMock(return_value=make_completion("Owls hunt at night."))

    ingestion_service = IngestionService(
        store=store,
        vector_store=vector_store,
        llm_service=llm_service,
        extractor=TextExtractor(),
        chunker=TextChunker(chunk_size=200, overlap=20),
    )
    audio_service = AudioOverviewService(
        store=store,
        llm_service=llm_service,
        renderer=PlaceholderAudioRenderer(audio_dir=tmp_path / "audio"),
    )
    runner = BackgroundTaskRunner(max_concurrency=2)

    components = {
        "store": store,
        "registry": registry,
        "vector_store": vector_store,
        "llm_service": llm_service,
        "runner": runner,
        "audio_service": audio_service,
        "chat_service": ChatService(store=store, vector_store=vector_store, llm_service=llm_service),
        "notebook_service": NotebookService(
            store=store,
            vector_store=vector_store,
            llm_service=llm_service,
            ingestion_service=ingestion_service,
            audio_service=audio_service,
            runner=runner,
            upload_dir=tmp_path / "uploads",
        ),
        "admin_service": AdminService(
            store=store,
            config_store=store,
            vector_store=vector_store,
            ollama_base_url=_OLLAMA_BASE_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(_ollama_handler)),
        ),
    }
    for key, value in components.items():
        setattr(app.state, key, value)
    return app, components


@pytest.fixture
def test_app(tmp_path):
    """Yield (TestClient, components) with the store initialised."""
    app, components = _create_test_app(tmp_path)
    with TestClient(app) as client:
        client.portal.call(components["store"].initialize)
        yield client, components


def _drain(client: TestClient, components: dict) -> None:
    client.portal.call(components["runner"].drain)


def _create_notebook(client: TestClient, title: str = "Birds") -> str:
    response = client.post(f"{_API}/notebooks", json={"title": title})
    assert response.status_code == 201
    return response.json()["id"]


def _add_processed_text(client: TestClient, components: dict, notebook_id: str) -> str:
    response = client.post(
        f"{_API}/notebooks/{notebook_id}/sources/text",
        json={"content": "Owls hunt at night.\n\nThey fly silently.", "title": "Owl notes"},
    )
    assert response.status_code == 201
    _drain(client, components)
    return response.json()["id"]


# ---------------------------------------------------------------------------
# Health / jobs
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_without_provider(self, test_app) -> None:
        client, _ = test_app

        response = client.get(f"{_API}/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["providers"]["active_llm"] is None
        assert data["providers"]["supported"] == ["anthropic", "gemini", "ollama", "openai"]
        assert data["providers"]["vector_store"] == "mock-vector-store"

    def test_health_reports_active_provider(self, test_app) -> None:
        client, _ = test_app
        client.post(
            f"{_API}/admin/provider-configs",
            json={"provider": "ollama", "model": "llama3.1", "is_default": True},
        )

        data = client.get(f"{_API}/health").json()

        assert data["providers"]["active_llm"] == {"provider": "ollama", "model": "llama3.1"}

    def test_jobs_snapshot(self, test_app) -> None:
        client, components = test_app
        components["llm_service"].chat = AsyncMock(side_effect=RuntimeError("boom"))
        notebook_id = _create_notebook(client)

        client.post(f"{_API}/notebooks/{notebook_id}/sources/text", json={"content": "x"})
        _drain(client, components)

        assert client.get(f"{_API}/jobs").json() == {"running": [], "failed": {}}


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


class TestNotebookEndpoints:
    def test_crud(self, test_app) -> None:
        client, _ = test_app

        notebook_id = _create_notebook(client, "Research")
        assert client.get(f"{_API}/notebooks/{notebook_id}").json()["title"] == "Research"
        assert [n["id"] for n in client.get(f"{_API}/notebooks").json()] == [notebook_id]

        patched = client.patch(
            f"{_API}/notebooks/{notebook_id}", json={"title": "Renamed", "color": "blue"}
        )
        assert patched.status_code == 200
        assert patched.json()["title"] == "Renamed"
        assert patched.json()["color"] == "blue"

        assert client.delete(f"{_API}/notebooks/{notebook_id}").status_code == 204
        assert client.get(f"{_API}/notebooks/{notebook_id}").status_code == 404

    def test_patch_null_title_keeps_title(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client, "Keep me")

        response = client.patch(f"{_API}/notebooks/{notebook_id}", json={"title": None})

        assert response.status_code == 200
        assert response.json()["title"] == "Keep me"

    def test_not_found_body(self, test_app) -> None:
        client, _ = test_app

        response = client.get(f"{_API}/notebooks/missing")

        assert response.status_code == 404
        assert response.json() == {
            "error": "NotFoundError",
            "detail": "Notebook not found: missing",
        }

    def test_generate_accepted(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        _add_processed_text(client, components, notebook_id)
        components["llm_service"].chat = AsyncMock(
            return_value=make_completion(
                '{"title": "Owls", "summary": "Night birds.", "notebook_icon": "🦉", '
                '"background_color": "indigo", "example_questions": ["Why hoot?"]}'
            )
        )

        response = client.post(f"{_API}/notebooks/{notebook_id}/generate")
        assert response.status_code == 202
        assert response.json()["generation_status"] == "generating"
        _drain(client, components)

        notebook = client.get(f"{_API}/notebooks/{notebook_id}").json()
        assert notebook["generation_status"] == "completed"
        assert notebook["title"] == "Owls"
        assert notebook["example_questions"] == ["Why hoot?"]


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TestSourceEndpoints:
    def test_text_source_is_ingested(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)

        source_id = _add_processed_text(client, components, notebook_id)

        source = client.get(f"{_API}/sources/{source_id}").json()
        assert source["status"] == "completed"
        assert source["origin"] == "inline"
        assert source["text_length"] > 0
        assert "extracted_text" not in source
        assert components["vector_store"].chunks_for_source(source_id)

        listed = client.get(f"{_API}/notebooks/{notebook_id}/sources").json()
        assert [s["id"] for s in listed] == [source_id]

    def test_empty_text_rejected(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/text", json={"content": "   "}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "UnreadableSourceError"

    def test_url_source_wrong_kind(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/url",
            json={"url": "https://example.com/a.pdf", "kind": "pdf"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "UnsupportedSourceError"

    def test_upload_text_file(self, test_app, tmp_path) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/upload",
            files={"file": ("notes.txt", io.BytesIO(b"Owls hunt at night."), "text/plain")},
            data={"title": "Field notes"},
        )
        _drain(client, components)

        assert response.status_code == 201
        body = response.json()
        assert body["kind"] == "text"
        assert body["title"] == "Field notes"
        assert body["origin"].startswith(str(tmp_path / "uploads"))
        assert client.get(f"{_API}/sources/{body['id']}").json()["status"] == "completed"

    def test_upload_empty_file(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/upload",
            files={"file": ("empty.txt", io.BytesIO(b""), "text/plain")},
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        ("filename", "content_type"),
        [
            ("archive.zip", "application/zip"),
            ("photo.png", "image/png"),
            ("data.json", "application/json"),
            ("archive.zip", "application/octet-stream"),
        ],
    )
    def test_upload_unsupported_type(
        self, test_app, tmp_path, filename: str, content_type: str
    ) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/upload",
            files={"file": (filename, io.BytesIO(b"PK just ascii bytes"), content_type)},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "UnsupportedSourceError"
        assert client.get(f"{_API}/notebooks/{notebook_id}/sources").json() == []
        assert not (tmp_path / "uploads").exists() or not any((tmp_path / "uploads").iterdir())

    def test_malformed_url_rejected(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/url", json={"url": "http://[::1"}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "SourceFetchError"
        assert client.get(f"{_API}/notebooks/{notebook_id}/sources").json() == []

    def test_rename_source(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        source_id = _add_processed_text(client, components, notebook_id)

        response = client.put(f"{_API}/sources/{source_id}", json={"title": "  Owl facts "})

        assert response.status_code == 200
        assert response.json()["title"] == "Owl facts"
        assert response.json()["status"] == "completed"
        assert client.get(f"{_API}/sources/{source_id}").json()["title"] == "Owl facts"

    def test_rename_source_validation(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        source_id = _add_processed_text(client, components, notebook_id)

        assert client.put(f"{_API}/sources/{source_id}", json={"title": "   "}).status_code == 422
        assert client.put(f"{_API}/sources/missing", json={"title": "x"}).status_code == 404

    def test_failed_source_can_be_reprocessed(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        response = client.post(
            f"{_API}/notebooks/{notebook_id}/sources/upload",
            files={"file": ("legacy.doc", io.BytesIO(b"\xd0\xcf\x11\xe0"), "application/msword")},
        )
        source_id = response.json()["id"]
        _drain(client, components)

        failed = client.get(f"{_API}/sources/{source_id}").json()
        assert failed["status"] == "failed"
        assert "Unsupported document format" in failed["error"]

        assert client.post(f"{_API}/sources/{source_id}/reprocess").status_code == 202
        _drain(client, components)
        assert client.get(f"{_API}/sources/{source_id}").json()["status"] == "failed"

    def test_reprocess_completed_conflict(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        source_id = _add_processed_text(client, components, notebook_id)

        response = client.post(f"{_API}/sources/{source_id}/reprocess")

        assert response.status_code == 409
        assert response.json()["error"] == "SourceBusyError"

    def test_delete_source(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        source_id = _add_processed_text(client, components, notebook_id)

        assert client.delete(f"{_API}/sources/{source_id}").status_code == 204
        assert client.get(f"{_API}/sources/{source_id}").status_code == 404
        assert components["vector_store"].chunks_for_source(source_id) == []


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TestChatEndpoints:
    def test_chat_requires_processed_sources(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(f"{_API}/notebooks/{notebook_id}/chat", json={"message": "hi"})

        assert response.status_code == 422
        assert response.json()["error"] == "NoProcessedSourcesError"
        assert client.get(f"{_API}/notebooks/{notebook_id}/chat").json()["messages"] == []

    def test_chat_turn_with_citations(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        source_id = _add_processed_text(client, components, notebook_id)
        components["llm_service"].chat = AsyncMock(
            return_value=make_completion("They hunt at night.\n\nSilently.", provider="gemini")
        )

        response = client.post(
            f"{_API}/notebooks/{notebook_id}/chat", json={"message": "When do owls hunt?"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user_message"]["role"] == "human"
        assert data["ai_message"]["provider"] == "gemini"
        assert [s["citation_id"] for s in data["answer"]["segments"]] == [1, 2]
        assert all(c["source_id"] == source_id for c in data["answer"]["citations"])
        assert all(c["source_title"] == "Owl notes" for c in data["answer"]["citations"])

        history = client.get(f"{_API}/notebooks/{notebook_id}/chat").json()
        assert [m["role"] for m in history["messages"]] == ["human", "ai"]

        cleared = client.delete(f"{_API}/notebooks/{notebook_id}/chat").json()
        assert cleared == {"notebook_id": notebook_id, "removed": 2}

    def test_provider_failure_is_bad_gateway(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        _add_processed_text(client, components, notebook_id)
        components["llm_service"].chat = AsyncMock(
            side_effect=ProviderUnavailableError(message="timeout", provider_name="ollama")
        )

        response = client.post(f"{_API}/notebooks/{notebook_id}/chat", json={"message": "hi"})

        assert response.status_code == 502
        assert response.json()["error"] == "ProviderUnavailableError"

    def test_empty_message_rejected(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        response = client.post(f"{_API}/notebooks/{notebook_id}/chat", json={"message": ""})

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Audio overview
# ---------------------------------------------------------------------------


class TestAudioEndpoints:
    def test_generate_then_fetch(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        _add_processed_text(client, components, notebook_id)

        response = client.post(f"{_API}/notebooks/{notebook_id}/audio")
        assert response.status_code == 202
        assert response.json()["status"] == "generating"
        _drain(client, components)

        audio = client.get(f"{_API}/notebooks/{notebook_id}/audio").json()
        assert audio["status"] == "completed"
        assert audio["url"].startswith("/audio/")

        assert client.delete(f"{_API}/notebooks/{notebook_id}/audio").status_code == 204
        assert client.get(f"{_API}/notebooks/{notebook_id}/audio").json()["url"] is None

    def test_expired_audio_is_gone(self, test_app) -> None:
        client, components = test_app
        notebook_id = _create_notebook(client)
        client.portal.call(
            components["store"].save_audio,
            notebook_id,
            "/audio/old.mp3",
            "script",
            datetime.now(tz=timezone.utc) - timedelta(hours=1),
        )

        response = client.get(f"{_API}/notebooks/{notebook_id}/audio")

        assert response.status_code == 410
        assert response.json()["error"] == "AudioOverviewExpiredError"
        assert response.json()["status"] == "completed"

        refreshed = client.post(f"{_API}/notebooks/{notebook_id}/audio/refresh")
        assert refreshed.status_code == 200
        assert client.get(f"{_API}/notebooks/{notebook_id}/audio").status_code == 200

    def test_refresh_without_audio(self, test_app) -> None:
        client, _ = test_app
        notebook_id = _create_notebook(client)

        assert client.post(f"{_API}/notebooks/{notebook_id}/audio/refresh").status_code == 404


# ---------------------------------------------------------------------------
# Provider configuration admin
# ---------------------------------------------------------------------------


class TestProviderConfigEndpoints:
    def test_create_masks_key(self, test_app) -> None:
        client, _ = test_app

        response = client.post(
            f"{_API}/admin/provider-configs",
            json={"provider": "openai", "model": "gpt-4o-mini", "api_key": "sk-secret-9876"},
        )

        assert response.status_code == 201
        assert response.json()["api_key"] == "**********9876"
        listed = client.get(f"{_API}/admin/provider-configs").json()
        assert [c["api_key"] for c in listed] == ["**********9876"]

    def test_unsupported_provider(self, test_app) -> None:
        client, _ = test_app

        response = client.post(
            f"{_API}/admin/provider-configs", json={"provider": "mistral", "model": "m"}
        )

        assert response.status_code == 422
        assert "Unsupported provider 'mistral'" in response.json()["detail"]

    def test_update_and_delete(self, test_app) -> None:
        client, _ = test_app
        config_id = client.post(
            f"{_API}/admin/provider-configs", json={"provider": "openai", "model": "a"}
        ).json()["id"]

        patched = client.patch(
            f"{_API}/admin/provider-configs/{config_id}",
            json={"model": "b", "is_default": True},
        )
        assert patched.status_code == 200
        assert patched.json()["model"] == "b"
        assert patched.json()["is_default"] is True

        assert client.delete(f"{_API}/admin/provider-configs/{config_id}").status_code == 204
        assert client.delete(f"{_API}/admin/provider-configs/{config_id}").status_code == 404
        assert (
            client.patch(f"{_API}/admin/provider-configs/{config_id}", json={"model": "c"})
        ).status_code == 404


class TestAdminEndpoints:
    def test_stats(self, test_app) -> None:
        client, components = test_app
        first = _create_notebook(client, "Birds")
        _create_notebook(client, "Empty")
        _add_processed_text(client, components, first)
        client.post(
            f"{_API}/notebooks/{first}/sources/url",
            json={"url": "https://youtu.be/owls", "kind": "youtube"},
        )
        _drain(client, components)

        response = client.get(f"{_API}/admin/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["total_notebooks"] == 2
        assert stats["total_sources"] == 2
        assert stats["source_kinds"] == {"text": 1, "youtube": 1}
        assert stats["total_chunks"] == client.portal.call(components["vector_store"].count)
        assert stats["total_chunks"] >= 2

    def test_stats_empty(self, test_app) -> None:
        client, _ = test_app

        assert client.get(f"{_API}/admin/stats").json() == {
            "total_notebooks": 0,
            "total_sources": 0,
            "total_chunks": 0,
            "source_kinds": {},
        }

    def test_ollama_models(self, test_app) -> None:
        client, _ = test_app

        response = client.get(f"{_API}/admin/ollama-models")

        assert response.status_code == 200
        (model,) = response.json()
        assert model["name"] == "llama3.1:8b"
        assert model["size"] == 4920753328
        assert model["details"]["family"] == "llama"

    def test_ollama_unreachable(self, test_app) -> None:
        client, components = test_app
        client.app.state.admin_service = AdminService(
            store=components["store"],
            config_store=components["store"],
            vector_store=components["vector_store"],
            ollama_base_url=_OLLAMA_BASE_URL,
            http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(503))
            ),
        )

        response = client.get(f"{_API}/admin/ollama-models")

        assert response.status_code == 502
        assert response.json()["error"] == "ProviderUnavailableError"
