"""Provider registry: the closed set of supported LLM backends.

Each backend is one :class:`ProviderVariant` -- a tag plus the factories
that build its chat adapter and, when the backend can embed, its
embedding adapter.  Supporting a new backend means registering a variant;
nothing else dispatches on provider names.

The registry also resolves *which* configuration to use.  It reads the
provider-config store on every call, so admin changes to the active or
default row take effect on the next request without a restart.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from notebook_rag.config.settings import Settings
from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider
from notebook_rag.interfaces.llm_provider import IChatProvider
from notebook_rag.interfaces.notebook_store import IProviderConfigStore
from notebook_rag.models.provider import ProviderConfig, ProviderKind
from notebook_rag.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from notebook_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from notebook_rag.providers.llm.anthropic_provider import AnthropicChatProvider
from notebook_rag.providers.llm.gemini_provider import GeminiChatProvider
from notebook_rag.providers.llm.ollama_provider import OllamaChatProvider
from notebook_rag.providers.llm.openai_provider import OpenAIChatProvider
from notebook_rag.utils.errors import (
    NoActiveProviderError,
    NoEmbeddingProviderAvailableError,
    UnsupportedProviderError,
)

logger = structlog.get_logger(logger_name=__name__)

ChatProviderFactory = Callable[[ProviderConfig], IChatProvider]
EmbeddingProviderFactory = Callable[[ProviderConfig], IEmbeddingProvider]


@dataclass(frozen=True)
class ProviderVariant:
    """One supported backend and the adapters it can build."""

    kind: ProviderKind
    chat_factory: ChatProviderFactory
    embedding_factory: EmbeddingProviderFactory | None = None

    @property
    def supports_embeddings(self) -> bool:
        return self.embedding_factory is not None


def default_variants(settings: Settings) -> list[ProviderVariant]:
    """Return the built-in variants wired with timeouts and models from *settings*."""
    timeout = settings.llm_timeout_seconds
    return [
        ProviderVariant(
            kind=ProviderKind.OPENAI,
            chat_factory=lambda cfg: OpenAIChatProvider(cfg, timeout=timeout),
            embedding_factory=lambda cfg: OpenAIEmbeddingProvider(
                cfg,
                default_model=settings.openai_embedding_model,
                timeout=timeout,
            ),
        ),
        ProviderVariant(
            kind=ProviderKind.ANTHROPIC,
            chat_factory=lambda cfg: AnthropicChatProvider(cfg, timeout=timeout),
        ),
        ProviderVariant(
            kind=ProviderKind.GEMINI,
            chat_factory=lambda cfg: GeminiChatProvider(cfg, timeout=timeout),
        ),
        ProviderVariant(
            kind=ProviderKind.OLLAMA,
            chat_factory=lambda cfg: OllamaChatProvider(cfg, timeout=timeout),
            embedding_factory=lambda cfg: OllamaEmbeddingProvider(cfg, timeout=timeout),
        ),
    ]


class ProviderRegistry:
    """Maps provider tags to adapter factories and resolves active configs."""

    def __init__(
        self,
        config_store: IProviderConfigStore,
        variants: list[ProviderVariant],
    ) -> None:
        self._config_store = config_store
        self._variants: dict[str, ProviderVariant] = {}
        for variant in variants:
            self.register(variant)

    def register(self, variant: ProviderVariant) -> None:
        """Add or replace the variant for ``variant.kind``."""
        self._variants[variant.kind.value] = variant

    def supported_providers(self) -> list[str]:
        return sorted(self._variants)

    def supports_embeddings(self, provider: str) -> bool:
        variant = self._variants.get(provider)
        return variant is not None and variant.supports_embeddings

    # ------------------------------------------------------------------
    # Adapter construction
    # ------------------------------------------------------------------

    def _variant_for(self, config: ProviderConfig) -> ProviderVariant:
        variant = self._variants.get(config.provider)
        if variant is None:
            raise UnsupportedProviderError(
                message=f"Unsupported provider: {config.provider}",
                provider_name=config.provider,
            )
        return variant

    def chat_provider_for(self, config: ProviderConfig) -> IChatProvider:
        """Build a chat adapter for *config*.

        Raises
        ------
        UnsupportedProviderError
            If no variant is registered for ``config.provider``.
        """
        return self._variant_for(config).chat_factory(config)

    def embedding_provider_for(self, config: ProviderConfig) -> IEmbeddingProvider:
        """Build an embedding adapter for *config*.

        Raises
        ------
        UnsupportedProviderError
            If the provider is unknown.
        NoEmbeddingProviderAvailableError
            If the provider has no embedding support.
        """
        variant = self._variant_for(config)
        if variant.embedding_factory is None:
            raise NoEmbeddingProviderAvailableError(
                message=f"Provider '{config.provider}' does not support embeddings",
                provider_name=config.provider,
            )
        return variant.embedding_factory(config)

    # ------------------------------------------------------------------
    # Config resolution
    # ------------------------------------------------------------------

    async def active_chat_config(self) -> ProviderConfig:
        """Return the active configuration, preferring the default row.

        Raises
        ------
        NoActiveProviderError
            If no configuration is marked active.
        """
        config = await self._config_store.get_active_provider_config()
        if config is None:
            raise NoActiveProviderError()
        return config

    async def embedding_config_for_active(self) -> ProviderConfig:
        """Return the configuration embeddings should use right now.

        The active default config is used when its backend can embed;
        otherwise the default active OpenAI config is used as fallback.

        Raises
        ------
        NoEmbeddingProviderAvailableError
            If neither exists.
        """
        active = await self._config_store.get_active_provider_config()
        if active is not None and self.supports_embeddings(active.provider):
            return active

        fallback = await self._config_store.get_active_provider_config(
            provider=ProviderKind.OPENAI.value,
        )
        if fallback is not None:
            logger.debug(
                "embedding_provider_fallback",
                active_provider=active.provider if active else None,
                fallback_config_id=fallback.id,
            )
            return fallback
        raise NoEmbeddingProviderAvailableError()

    async def embedding_provider_for_active(self) -> IEmbeddingProvider:
        """Build the embedding adapter for :meth:`embedding_config_for_active`."""
        config = await self.embedding_config_for_active()
        return self.embedding_provider_for(config)
