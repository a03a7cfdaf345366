"""Vector store provider adapters."""

from notebook_rag.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
