"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap the OpenAI embeddings API (or any OpenAI-compatible
endpoint) and Ollama's local embedding models.  Vector dimensionality is
provider-defined and must stay consistent within one vector store; after
switching providers, existing chunks have to be re-embedded by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider  -- text-embedding-ada-002 by default
#   OllamaEmbeddingProvider  -- local model via Ollama's /v1 endpoint
#   ActiveEmbeddingProvider  -- resolves one of the above per call from the
#                               active provider configuration
# Located in: notebook_rag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the vector store."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally when the API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        notebook_rag.utils.errors.ProviderError
            If the embedding API call fails.
        notebook_rag.utils.errors.NoEmbeddingProviderAvailableError
            If no embedding-capable configuration can be resolved.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Convenience wrapper around :meth:`embed` for the common
        single-text case (e.g. embedding a search query).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
