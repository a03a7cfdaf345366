"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement
:class:`IVectorStoreProvider`.  Uses cosine distance; similarity is
reported as the raw ``1 - distance``, in ``[-1, 1]``.  All notebooks share
one collection and every query filters on ``notebook_id``.
"""

from __future__ import annotations

import os
import uuid
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  The bundled
# PostHog client breaks against newer posthog releases, so it is switched
# off through the env var, the SDK flag and the client Settings.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider
from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
from notebook_rag.models.rag import DocumentChunk, RetrievedChunk
from notebook_rag.utils.errors import NotebookRAGError, RetrievalError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_REQUIRED_METADATA = ("notebook_id", "source_id", "source_title", "source_kind", "chunk_index")


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that keeps ChromaDB from loading its default model.

    Every write and query passes pre-computed embeddings, so ChromaDB's
    built-in embedding is never invoked.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "notebook_rag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    An :class:`IEmbeddingProvider` is injected at init time; it embeds chunk
    text on write and query text on search.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "notebook_chunks",
    ) -> None:
        self._embedding_provider = embedding_provider
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by another ChromaDB version may have a
        # different persisted embedding function; reopen without one.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def insert(self, text: str, metadata: dict[str, Any]) -> str:
        """Embed *text* and store it with *metadata*; return the new chunk id."""
        missing = [key for key in _REQUIRED_METADATA if key not in metadata]
        if missing:
            raise ValueError(f"chunk metadata missing required keys: {', '.join(missing)}")

        chunk = DocumentChunk(
            chunk_id=str(uuid.uuid4()),
            text=text,
            notebook_id=str(metadata["notebook_id"]),
            source_id=str(metadata["source_id"]),
            source_title=str(metadata["source_title"]),
            source_kind=str(metadata["source_kind"]),
            chunk_index=int(metadata["chunk_index"]),
            notebook_title=metadata.get("notebook_title"),
        )
        await self.add_chunks([chunk])
        return chunk.chunk_id

    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        """Embed every chunk, then upsert the whole batch in one call."""
        if not chunks:
            return 0

        embeddings = await self._embed_for_write([c.text for c in chunks])
        if len(embeddings) != len(chunks):
            raise VectorStoreError(
                message=f"embedding count mismatch: {len(embeddings)} != {len(chunks)}",
                provider_name=self.get_provider_name(),
            )

        try:
            self._collection.upsert(
                ids=[c.chunk_id for c in chunks],
                embeddings=embeddings,
                documents=[c.text for c in chunks],
                metadatas=[self._chunk_to_metadata(c) for c in chunks],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_add_chunks",
            count=len(chunks),
            notebook_id=chunks[0].notebook_id,
            source_id=chunks[0].source_id,
        )
        return len(chunks)

    async def search(
        self,
        query_text: str,
        notebook_id: str,
        limit: int = 5,
    ) -> list[RetrievedChunk]:
        """Return the *limit* chunks of *notebook_id* closest to *query_text*."""
        if limit <= 0:
            return []
        try:
            query_embedding = await self._embedding_provider.embed_single(query_text)
            if self._collection.count() == 0:
                return []

            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=limit,
                where={"notebook_id": notebook_id},
            )
        except Exception as exc:
            raise RetrievalError(
                message=f"Similarity search failed: {exc}",
                provider_name=self._error_source(exc),
            ) from exc

        if not results["documents"] or not results["documents"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(documents)
        distances = results["distances"][0] if results["distances"] else [0.0] * len(documents)

        retrieved: list[RetrievedChunk] = []
        for chunk_id, doc_text, meta, distance in zip(
            ids, documents, metadatas, distances, strict=True
        ):
            chunk = self._metadata_to_chunk(chunk_id, meta or {}, doc_text or "")
            if chunk.notebook_id != notebook_id:
                logger.warning(
                    "chromadb_foreign_chunk_dropped",
                    chunk_id=chunk_id,
                    expected_notebook=notebook_id,
                    actual_notebook=chunk.notebook_id,
                )
                continue
            retrieved.append(RetrievedChunk(chunk=chunk, similarity=1.0 - distance))

        retrieved.sort(key=lambda rc: rc.similarity, reverse=True)
        logger.info(
            "chromadb_query",
            notebook_id=notebook_id,
            query_length=len(query_text),
            results_count=len(retrieved),
            top_score=retrieved[0].similarity if retrieved else 0.0,
        )
        return retrieved[:limit]

    async def delete_by_notebook(self, notebook_id: str) -> int:
        """Delete all chunks belonging to a notebook."""
        return self._delete_where({"notebook_id": notebook_id}, "notebook_id", notebook_id)

    async def delete_by_source(self, source_id: str) -> int:
        """Delete all chunks originating from the given source."""
        return self._delete_where({"source_id": source_id}, "source_id", source_id)

    async def count(self, notebook_id: str | None = None) -> int:
        try:
            if notebook_id is None:
                return self._collection.count()
            existing = self._collection.get(where={"notebook_id": notebook_id}, include=[])
            return len(existing["ids"]) if existing["ids"] else 0
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _embed_for_write(self, texts: list[str]) -> list[list[float]]:
        """Embed texts for a write.  Typed errors pass through unchanged."""
        try:
            return await self._embedding_provider.embed(texts)
        except NotebookRAGError:
            raise
        except Exception as exc:
            raise VectorStoreError(
                message=f"Embedding failed: {exc}",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc

    def _error_source(self, exc: Exception) -> str:
        if isinstance(exc, NotebookRAGError) and exc.provider_name:
            return exc.provider_name
        return self.get_provider_name()

    def _delete_where(self, where: dict[str, Any], key: str, value: str) -> int:
        try:
            existing = self._collection.get(where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where=where)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete by {key} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete", field=key, value=value, deleted_count=count)
        return count

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, str | int | float | bool]:
        """Convert a DocumentChunk to a ChromaDB-compatible metadata dict.

        ChromaDB metadata values must be str, int, float, or bool, so
        ``None`` fields are omitted.
        """
        meta: dict[str, str | int | float | bool] = {
            "notebook_id": chunk.notebook_id,
            "source_id": chunk.source_id,
            "source_title": chunk.source_title,
            "source_kind": chunk.source_kind,
            "chunk_index": chunk.chunk_index,
        }
        if chunk.notebook_title is not None:
            meta["notebook_title"] = chunk.notebook_title
        return meta

    @staticmethod
    def _metadata_to_chunk(chunk_id: str, meta: dict[str, Any], text: str) -> DocumentChunk:
        """Convert a ChromaDB metadata dict back to a DocumentChunk."""
        return DocumentChunk(
            chunk_id=chunk_id,
            text=text,
            notebook_id=str(meta.get("notebook_id", "")),
            source_id=str(meta.get("source_id", "")),
            source_title=str(meta.get("source_title") or "Unknown source"),
            source_kind=str(meta.get("source_kind") or "text"),
            chunk_index=int(meta.get("chunk_index", 0)),
            notebook_title=meta.get("notebook_title"),
        )
