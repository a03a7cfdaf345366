"""Embedding provider that follows the active provider configuration.

The vector store is built once at startup, but which backend embeds is an
admin setting that can change at any time.  This adapter resolves the
concrete provider through the :class:`ProviderRegistry` on every call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider

if TYPE_CHECKING:
    from notebook_rag.providers.registry import ProviderRegistry


class ActiveEmbeddingProvider(IEmbeddingProvider):
    """Delegates to the embedding adapter of the currently active config."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        provider = await self._registry.embedding_provider_for_active()
        return await provider.embed(texts)

    async def embed_single(self, text: str) -> list[float]:
        provider = await self._registry.embedding_provider_for_active()
        return await provider.embed_single(text)

    def get_provider_name(self) -> str:
        return "active_embedding"

    def is_available(self) -> bool:
        return True
