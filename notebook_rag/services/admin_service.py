"""Operator endpoints that read across every notebook.

- :meth:`AdminService.stats` -- notebook, source and chunk counts plus the
  source-kind distribution.
- :meth:`AdminService.ollama_models` -- models installed on the Ollama
  server, found through the first active ``ollama`` provider config that
  names a base URL, else the configured ``OLLAMA_BASE_URL``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog

from notebook_rag.models.admin import OllamaModel, SystemStats
from notebook_rag.models.provider import ProviderKind
from notebook_rag.providers.llm.ollama_provider import list_ollama_models

if TYPE_CHECKING:
    from notebook_rag.interfaces.notebook_store import INotebookStore, IProviderConfigStore
    from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class AdminService:
    """Deployment-wide statistics and local model discovery."""

    def __init__(
        self,
        store: INotebookStore,
        config_store: IProviderConfigStore,
        vector_store: IVectorStoreProvider,
        ollama_base_url: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._store = store
        self._config_store = config_store
        self._vector_store = vector_store
        self._ollama_base_url = ollama_base_url
        self._http_client = http_client

    async def stats(self) -> SystemStats:
        source_kinds = await self._store.count_sources_by_kind()
        return SystemStats(
            total_notebooks=await self._store.count_notebooks(),
            total_sources=sum(source_kinds.values()),
            total_chunks=await self._vector_store.count(),
            source_kinds=source_kinds,
        )

    async def ollama_models(self) -> list[OllamaModel]:
        """List the models of the Ollama server in use.

        Raises
        ------
        ProviderUnavailableError
            If the server cannot be reached.
        ProviderResponseError
            If the server's reply is malformed.
        """
        base_url = await self._resolve_ollama_base_url()
        models = await list_ollama_models(base_url, http_client=self._http_client)
        logger.info("ollama_models_listed", base_url=base_url, count=len(models))
        return models

    async def _resolve_ollama_base_url(self) -> str | None:
        for config in await self._config_store.list_provider_configs():
            if config.provider == ProviderKind.OLLAMA.value and config.is_active and config.base_url:
                return config.base_url
        return self._ollama_base_url or None
