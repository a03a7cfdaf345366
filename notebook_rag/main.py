"""notebook_rag FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and mounts the audio overview directory as static files.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from notebook_rag import __version__
from notebook_rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from notebook_rag.api.routes import router as api_router
from notebook_rag.config.loader import load_config
from notebook_rag.config.settings import Settings
from notebook_rag.interfaces.notebook_store import IProviderConfigStore
from notebook_rag.pipeline.task_runner import BackgroundTaskRunner
from notebook_rag.providers.audio.placeholder_renderer import PlaceholderAudioRenderer
from notebook_rag.providers.embedding.active_embedding_provider import ActiveEmbeddingProvider
from notebook_rag.providers.registry import ProviderRegistry, default_variants
from notebook_rag.providers.storage.sqlite_store import SQLiteNotebookStore
from notebook_rag.providers.vector_store.chromadb_provider import ChromaDBProvider
from notebook_rag.services.admin_service import AdminService
from notebook_rag.services.audio_overview_service import AudioOverviewService
from notebook_rag.services.chat_service import ChatService
from notebook_rag.services.citation_service import CitationService
from notebook_rag.services.ingestion import IngestionService, TextChunker, TextExtractor
from notebook_rag.services.llm_service import LLMService
from notebook_rag.services.notebook_service import NotebookService
from notebook_rag.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component construction
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Persistence --
    store = SQLiteNotebookStore(db_path=app_settings.database_path)

    # -- Providers --
    registry = ProviderRegistry(config_store=store, variants=default_variants(app_settings))
    embedding_provider = ActiveEmbeddingProvider(registry)
    vector_store = ChromaDBProvider(
        embedding_provider=embedding_provider,
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
    )
    renderer = PlaceholderAudioRenderer(audio_dir=app_settings.audio_dir)

    # -- Services --
    llm_service = LLMService(
        registry,
        default_temperature=app_settings.llm_default_temperature,
        default_max_tokens=app_settings.llm_default_max_tokens,
    )
    extractor = TextExtractor(http_timeout=app_settings.http_timeout)
    ingestion_service = IngestionService(
        store=store,
        vector_store=vector_store,
        llm_service=llm_service,
        extractor=extractor,
        chunker=TextChunker(
            chunk_size=app_settings.chunk_size,
            overlap=app_settings.chunk_overlap,
        ),
        summary_input_chars=app_settings.summary_input_chars,
    )
    chat_service = ChatService(
        store=store,
        vector_store=vector_store,
        llm_service=llm_service,
        citation_service=CitationService(),
        top_k=app_settings.retrieval_top_k,
        history_limit=app_settings.chat_history_limit,
    )
    audio_service = AudioOverviewService(
        store=store,
        llm_service=llm_service,
        renderer=renderer,
        ttl_hours=app_settings.audio_url_ttl_hours,
        source_excerpt_chars=app_settings.source_excerpt_chars,
    )

    # -- Background worker --
    runner = BackgroundTaskRunner(max_concurrency=app_settings.worker_max_concurrency)

    notebook_service = NotebookService(
        store=store,
        vector_store=vector_store,
        llm_service=llm_service,
        ingestion_service=ingestion_service,
        audio_service=audio_service,
        runner=runner,
        upload_dir=app_settings.upload_dir,
        generation_source_limit=app_settings.notebook_generation_source_limit,
        source_excerpt_chars=app_settings.source_excerpt_chars,
    )

    admin_service = AdminService(
        store=store,
        config_store=store,
        vector_store=vector_store,
        ollama_base_url=app_settings.ollama_base_url,
    )

    return {
        "settings": app_settings,
        "store": store,
        "registry": registry,
        "vector_store": vector_store,
        "renderer": renderer,
        "llm_service": llm_service,
        "extractor": extractor,
        "ingestion_service": ingestion_service,
        "chat_service": chat_service,
        "audio_service": audio_service,
        "runner": runner,
        "notebook_service": notebook_service,
        "admin_service": admin_service,
    }


_BOOTSTRAP_FIELDS: dict[str, tuple[str, str, str]] = {
    # provider -> (model setting, api key setting, base url setting)
    "anthropic": ("anthropic_chat_model", "anthropic_api_key", ""),
    "openai": ("openai_chat_model", "openai_api_key", "openai_base_url"),
    "gemini": ("gemini_chat_model", "gemini_api_key", ""),
    "ollama": ("ollama_chat_model", "", "ollama_base_url"),
}


async def _seed_provider_configs(store: IProviderConfigStore, app_settings: Settings) -> int:
    """Create provider-config rows from the environment on an empty table.

    The first configured provider (Anthropic -> OpenAI -> Gemini -> Ollama)
    becomes the default.  Returns the number of rows created.
    """
    if await store.count_provider_configs() > 0:
        return 0

    created = 0
    for provider in app_settings.get_bootstrap_providers():
        model_field, key_field, url_field = _BOOTSTRAP_FIELDS[provider]
        await store.create_provider_config(
            provider=provider,
            model=getattr(app_settings, model_field),
            api_key=getattr(app_settings, key_field) if key_field else None,
            base_url=(getattr(app_settings, url_field) or None) if url_field else None,
            is_active=True,
            is_default=created == 0,
        )
        created += 1

    _logger.info("provider_configs_seeded", count=created)
    return created


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    Path(settings.audio_dir).mkdir(parents=True, exist_ok=True)
    await components["store"].initialize()
    await _seed_provider_configs(components["store"], settings)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        providers=components["registry"].supported_providers(),
        vector_store=components["vector_store"].get_provider_name(),
    )

    yield

    # -- Shutdown: let in-flight jobs finish, then close the HTTP client --
    runner: BackgroundTaskRunner = components["runner"]
    await runner.drain()
    await components["extractor"].close()
    _logger.info("app_shutdown", message="Background jobs drained, HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="notebook_rag API",
        version=__version__,
        description=(
            "Collect documents, web pages and text into notebooks, then chat "
            "with them through retrieval-augmented answers with per-paragraph "
            "citations, and generate notebook summaries and audio overviews."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(
        application,
        allowed_origins=config.get("cors", {}).get("allowed_origins"),
    )

    # -- API routes --
    application.include_router(api_router)

    # -- Audio overview assets --
    application.mount(
        "/audio",
        StaticFiles(directory=settings.audio_dir, check_dir=False),
        name="audio",
    )

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "notebook_rag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
