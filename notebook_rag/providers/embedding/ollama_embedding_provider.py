"""Ollama embedding provider adapter (local, no API key).

Talks to the OpenAI-compatible ``/v1`` endpoint that Ollama exposes, so it
reuses :class:`OpenAIEmbeddingProvider` with a different client and a
smaller batch limit.
"""

from __future__ import annotations

import openai

from notebook_rag.models.provider import ProviderConfig
from notebook_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from notebook_rag.providers.llm.ollama_provider import ollama_v1_url

_OLLAMA_BATCH_LIMIT = 512


class OllamaEmbeddingProvider(OpenAIEmbeddingProvider):
    """Embedding provider backed by a model served through Ollama.

    The model is ``extra_config["embedding_model"]`` when set, otherwise the
    config's chat model.
    """

    _batch_limit = _OLLAMA_BATCH_LIMIT

    def __init__(self, config: ProviderConfig, timeout: float = 60.0) -> None:
        super().__init__(config, default_model=config.model, timeout=timeout)

    def _build_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            base_url=ollama_v1_url(self._config.base_url),
            api_key="ollama",  # Ollama doesn't require a real key
            timeout=openai.Timeout(self._timeout, connect=5.0),
        )

    def get_provider_name(self) -> str:
        return "ollama"

    def is_available(self) -> bool:
        return True
