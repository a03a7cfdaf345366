"""Text-embedding provider adapters."""

from notebook_rag.providers.embedding.active_embedding_provider import ActiveEmbeddingProvider
from notebook_rag.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from notebook_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = [
    "ActiveEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
