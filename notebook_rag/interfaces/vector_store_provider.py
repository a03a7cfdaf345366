"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying and deleting embedded document
chunks.  Every query is scoped to one notebook: a search must never return
a chunk whose ``notebook_id`` differs from the one asked for.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from notebook_rag.models.rag import DocumentChunk, RetrievedChunk


# Concrete implementation: ChromaDBProvider (notebook_rag/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by ingestion and chat.

    The store owns the embedding step: callers pass text, the provider
    embeds it with its injected
    :class:`~notebook_rag.interfaces.embedding_provider.IEmbeddingProvider`
    and only writes once every vector has been computed.
    """

    @abstractmethod
    async def insert(self, text: str, metadata: dict[str, Any]) -> str:
        """Embed and persist a single chunk.

        Parameters
        ----------
        text:
            The chunk text.
        metadata:
            Must carry ``notebook_id``, ``source_id``, ``source_title``,
            ``source_kind`` and ``chunk_index``.

        Returns
        -------
        str
            The generated chunk id.

        Raises
        ------
        ValueError
            If a required metadata key is missing.
        notebook_rag.utils.errors.VectorStoreError
            If embedding or the write fails.  Nothing is written in that case.
        """

    @abstractmethod
    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        """Embed and persist a batch of chunks in a single write.

        All texts are embedded before anything is written, so an embedding
        failure leaves the store untouched.

        Returns
        -------
        int
            The number of chunks written.

        Raises
        ------
        notebook_rag.utils.errors.VectorStoreError
            If embedding or the write fails.
        """

    @abstractmethod
    async def search(
        self,
        query_text: str,
        notebook_id: str,
        limit: int = 5,
    ) -> list[RetrievedChunk]:
        """Return the chunks of *notebook_id* most similar to *query_text*.

        Parameters
        ----------
        query_text:
            Natural-language query to embed.
        notebook_id:
            Only chunks of this notebook are considered.
        limit:
            Maximum number of results.

        Returns
        -------
        list[RetrievedChunk]
            Results ordered by cosine similarity, descending.

        Raises
        ------
        notebook_rag.utils.errors.RetrievalError
            If embedding the query or the vector query fails.
        """

    @abstractmethod
    async def delete_by_notebook(self, notebook_id: str) -> int:
        """Delete every chunk of a notebook.  Idempotent; returns the count removed."""

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> int:
        """Delete every chunk of a source.  Idempotent; returns the count removed."""

    @abstractmethod
    async def count(self, notebook_id: str | None = None) -> int:
        """Return the number of stored chunks, optionally for one notebook."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector-store provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the vector store is initialised and usable."""
