"""Unit tests for the wiring functions in notebook_rag/main.py.

Tests provider-config seeding, _build_all assembly and the create_app
factory with a temporary data directory, so no real network calls or
API keys are required.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from notebook_rag.config.settings import Settings

# ======================================================================
# Shared helpers
# ======================================================================


def _settings(tmp_path: Path, **overrides) -> Settings:
    """Build a Settings instance with empty keys and a temporary data dir."""
    defaults = {
        "_env_file": None,
        "openai_api_key": "",
        "anthropic_api_key": "",
        "gemini_api_key": "",
        "ollama_base_url": "",
        "database_path": str(tmp_path / "notebooks.db"),
        "chromadb_persist_dir": str(tmp_path / "chromadb"),
        "upload_dir": str(tmp_path / "uploads"),
        "audio_dir": str(tmp_path / "audio"),
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _seed_provider_configs
# ======================================================================


class TestSeedProviderConfigs:
    @pytest.mark.asyncio
    async def test_seeds_in_priority_order(self, store, tmp_path) -> None:
        from notebook_rag.main import _seed_provider_configs

        settings = _settings(
            tmp_path,
            openai_api_key="sk-openai-1234",
            openai_base_url="https://proxy.example.com/v1",
            anthropic_api_key="sk-ant-5678",
            ollama_base_url="http://localhost:11434",
        )

        created = await _seed_provider_configs(store, settings)

        configs = await store.list_provider_configs()
        assert created == 3
        assert [c.provider for c in configs] == ["anthropic", "openai", "ollama"]
        assert [c.is_default for c in configs] == [True, False, False]
        assert configs[0].model == settings.anthropic_chat_model
        assert configs[1].base_url == "https://proxy.example.com/v1"
        assert configs[2].api_key is None
        assert configs[2].base_url == "http://localhost:11434"

    @pytest.mark.asyncio
    async def test_empty_openai_base_url_stored_as_none(self, store, tmp_path) -> None:
        from notebook_rag.main import _seed_provider_configs

        await _seed_provider_configs(store, _settings(tmp_path, openai_api_key="sk-x"))

        (config,) = await store.list_provider_configs()
        assert config.base_url is None
        assert config.is_default is True

    @pytest.mark.asyncio
    async def test_existing_rows_are_left_alone(self, store, tmp_path) -> None:
        from notebook_rag.main import _seed_provider_configs

        await store.create_provider_config("gemini", "gemini-pro", api_key="g")

        created = await _seed_provider_configs(store, _settings(tmp_path, openai_api_key="sk-x"))

        assert created == 0
        assert [c.provider for c in await store.list_provider_configs()] == ["gemini"]

    @pytest.mark.asyncio
    async def test_nothing_configured(self, store, tmp_path) -> None:
        from notebook_rag.main import _seed_provider_configs

        assert await _seed_provider_configs(store, _settings(tmp_path)) == 0
        assert await store.count_provider_configs() == 0


# ======================================================================
# _build_all / create_app
# ======================================================================


class TestBuildAll:
    def test_returns_every_component(self, tmp_path) -> None:
        from notebook_rag.main import _build_all

        components = _build_all(_settings(tmp_path))

        assert set(components) == {
            "settings",
            "store",
            "registry",
            "vector_store",
            "renderer",
            "llm_service",
            "extractor",
            "ingestion_service",
            "chat_service",
            "audio_service",
            "runner",
            "notebook_service",
            "admin_service",
        }
        assert components["vector_store"].get_provider_name() == "chromadb"
        assert components["registry"].supported_providers() == [
            "anthropic",
            "gemini",
            "ollama",
            "openai",
        ]


class TestCreateApp:
    def test_create_app_routes(self) -> None:
        from notebook_rag.main import create_app

        app = create_app()

        assert isinstance(app, FastAPI)
        paths = {route.path for route in app.routes}
        assert "/api/v1/health" in paths
        assert "/api/v1/notebooks/{notebook_id}/chat" in paths
        assert "/api/v1/admin/provider-configs" in paths
        assert "/api/v1/admin/stats" in paths
        assert "/api/v1/admin/ollama-models" in paths
        assert "/audio" in paths
