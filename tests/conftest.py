"""Shared pytest fixtures for the notebook_rag test suite."""

from __future__ import annotations

import hashlib
import struct
import uuid
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider
from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
from notebook_rag.models.provider import ChatCompletion
from notebook_rag.models.rag import DocumentChunk, RetrievedChunk
from notebook_rag.providers.storage.sqlite_store import SQLiteNotebookStore
from notebook_rag.services.llm_service import LLMService

# ---------------------------------------------------------------------------
# Embedding / vector store fixtures
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 128


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length unit vector by hashing *text*.

    Uses SHA-256 to hash the text, then unpacks bytes into floats and
    normalises to unit length.  Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    values = [v if v == v and abs(v) < 1e30 else 0.0 for v in struct.unpack(f"<{dim}f", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return _hash_to_vector(text)

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store keyed by chunk id.

    Search is scoped to one notebook and ranks chunks by the dot product
    of their hash vectors, mapped into ``[0, 1]``.
    """

    def __init__(self) -> None:
        self._store: dict[str, tuple[DocumentChunk, list[float]]] = {}

    async def insert(self, text: str, metadata: dict[str, Any]) -> str:
        chunk = DocumentChunk(
            chunk_id=str(uuid.uuid4()),
            text=text,
            notebook_id=metadata["notebook_id"],
            source_id=metadata["source_id"],
            source_title=metadata.get("source_title", "Unknown source"),
            source_kind=metadata.get("source_kind", "text"),
            chunk_index=metadata.get("chunk_index", 0),
        )
        await self.add_chunks([chunk])
        return chunk.chunk_id

    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        for chunk in chunks:
            self._store[chunk.chunk_id] = (chunk, _hash_to_vector(chunk.text))
        return len(chunks)

    async def search(
        self,
        query_text: str,
        notebook_id: str,
        limit: int = 5,
    ) -> list[RetrievedChunk]:
        query_vec = _hash_to_vector(query_text)
        scored: list[tuple[float, DocumentChunk]] = []
        for chunk, vec in self._store.values():
            if chunk.notebook_id != notebook_id:
                continue
            dot = sum(a * b for a, b in zip(query_vec, vec, strict=True))
            scored.append((max(0.0, min(1.0, (dot + 1.0) / 2.0)), chunk))
        scored.sort(key=lambda x: x[0], reverse=True)
        return [RetrievedChunk(chunk=c, similarity=s) for s, c in scored[:limit]]

    async def delete_by_notebook(self, notebook_id: str) -> int:
        doomed = [cid for cid, (c, _) in self._store.items() if c.notebook_id == notebook_id]
        for cid in doomed:
            del self._store[cid]
        return len(doomed)

    async def delete_by_source(self, source_id: str) -> int:
        doomed = [cid for cid, (c, _) in self._store.items() if c.source_id == source_id]
        for cid in doomed:
            del self._store[cid]
        return len(doomed)

    async def count(self, notebook_id: str | None = None) -> int:
        if notebook_id is None:
            return len(self._store)
        return sum(1 for c, _ in self._store.values() if c.notebook_id == notebook_id)

    def chunks_for_source(self, source_id: str) -> list[DocumentChunk]:
        return sorted(
            (c for c, _ in self._store.values() if c.source_id == source_id),
            key=lambda c: c.chunk_index,
        )

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Mock IEmbeddingProvider returning deterministic hash-based vectors."""
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    """Mock IVectorStoreProvider backed by an in-memory dict."""
    return MockVectorStore()


@pytest.fixture
def tmp_chromadb(tmp_path: Path, mock_embedding_provider: MockEmbeddingProvider):
    """Create a ChromaDBProvider persisted under a temporary directory."""
    from notebook_rag.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(
        embedding_provider=mock_embedding_provider,
        persist_directory=str(tmp_path / "chromadb_test"),
        collection_name="test_chunks",
    )


# ---------------------------------------------------------------------------
# Storage / LLM fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> SQLiteNotebookStore:
    """Initialised SQLite store in a temporary directory."""
    db = SQLiteNotebookStore(db_path=tmp_path / "notebooks.db")
    await db.initialize()
    return db


def make_completion(text: str, provider: str = "openai", model: str = "gpt-test") -> ChatCompletion:
    return ChatCompletion(text=text, provider=provider, model=model)


@pytest.fixture
def mock_llm_service() -> MagicMock:
    """LLMService double whose ``chat`` returns a fixed completion."""
    service = MagicMock(spec=LLMService)
    service.chat = AsyncMock(return_value=make_completion("Mock LLM answer."))
    return service


@pytest.fixture
def sample_text() -> str:
    """Multi-paragraph text used by chunker and ingestion tests."""
    return (
        "Photosynthesis is the process by which green plants, algae and some "
        "bacteria convert light energy into chemical energy. It takes place "
        "mainly in the chloroplasts of leaf cells, where chlorophyll absorbs "
        "red and blue light and reflects green.\n\n"
        "The light-dependent reactions happen in the thylakoid membranes. "
        "Water molecules are split, oxygen is released as a by-product, and "
        "the energy carriers ATP and NADPH are produced.\n\n"
        "The Calvin cycle, also called the light-independent reactions, runs "
        "in the stroma. It uses ATP and NADPH to fix carbon dioxide into "
        "three-carbon sugars, which the plant later assembles into glucose, "
        "sucrose and starch.\n\n"
        "Environmental factors such as light intensity, carbon dioxide "
        "concentration and temperature limit the rate of photosynthesis. "
        "Above an optimum temperature the enzymes involved begin to denature "
        "and the rate falls sharply.\n\n"
        "Almost all life on Earth depends on photosynthesis, directly or "
        "indirectly, for food and for the oxygen in the atmosphere."
    )
