"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports real OpenAI and any OpenAI-compatible endpoint through the
provider config's ``base_url``.
"""

from __future__ import annotations

import openai
import structlog

from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider
from notebook_rag.models.provider import ProviderConfig
from notebook_rag.utils.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    The model comes from ``extra_config["embedding_model"]`` when present,
    otherwise *default_model*.  Inputs larger than the per-call limit are
    split into batches.
    """

    _batch_limit = _OPENAI_BATCH_LIMIT

    def __init__(
        self,
        config: ProviderConfig,
        default_model: str = DEFAULT_EMBEDDING_MODEL,
        timeout: float = 60.0,
    ) -> None:
        self._config = config
        self._api_key = config.api_key or ""
        self._timeout = timeout
        self._model = str(config.extra_config.get("embedding_model") or default_model)
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1536)
        self._client = self._build_client()

    def _build_client(self) -> openai.AsyncOpenAI:
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(self._timeout, connect=5.0),
        }
        if self._config.base_url:
            client_kwargs["base_url"] = self._config.base_url
        return openai.AsyncOpenAI(**client_kwargs)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts."""
        if not texts:
            return []

        provider = self.get_provider_name()
        all_embeddings: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._batch_limit):
                batch = texts[start : start + self._batch_limit]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                batch_embeddings = [item.embedding for item in response.data]
                if len(batch_embeddings) != len(batch):
                    raise ProviderResponseError(
                        message=(
                            f"{provider} returned {len(batch_embeddings)} vectors "
                            f"for {len(batch)} inputs"
                        ),
                        provider_name=provider,
                    )
                all_embeddings.extend(batch_embeddings)
                logger.info(
                    "embedding_batch",
                    model=self._model,
                    provider=provider,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ProviderAuthError(
                message=f"{provider} rejected the API key: {exc}",
                provider_name=provider,
            ) from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{provider} embedding rate limit exceeded: {exc}",
                provider_name=provider,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"Could not reach {provider} embeddings: {exc}",
                provider_name=provider,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(
                message=f"{provider} embedding API error: {exc}",
                provider_name=provider,
            ) from exc
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_model(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "openai"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
