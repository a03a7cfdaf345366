"""Provider-agnostic chat completion entry point.

:class:`LLMService` is what the rest of the application calls to "ask
the LLM".  On every call it reads the currently active provider config,
builds a fresh adapter for it through the :class:`ProviderRegistry`, and
dispatches.  Changing the default provider through the admin API is
therefore picked up by the very next call.

Sampling options are merged in three layers, last one wins:

    1. service defaults (``llm_default_temperature`` / ``llm_default_max_tokens``)
    2. per-call arguments
    3. the active config's stored ``extra_config``
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from notebook_rag.models.provider import ChatCompletion, ChatOptions, LLMMessage, ProviderConfig
from notebook_rag.providers.registry import ProviderRegistry
from notebook_rag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_OPTION_KEYS = ("temperature", "max_tokens")


def merge_options(
    defaults: dict[str, Any],
    overrides: dict[str, Any],
    extra_config: dict[str, Any],
) -> ChatOptions:
    """Merge option layers into a validated :class:`ChatOptions`.

    ``None`` values in *overrides* mean "not specified" and are skipped.
    Only the known option keys are read from *extra_config*; anything
    else stored there (e.g. ``embedding_model``) is ignored.

    Raises
    ------
    ConfigurationError
        If the merged values are out of range.
    """
    merged = dict(defaults)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    merged.update({k: extra_config[k] for k in _OPTION_KEYS if k in extra_config})
    try:
        return ChatOptions(**merged)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid LLM options: {exc}") from exc


class LLMService:
    """Dispatches chat requests to whichever provider is active right now."""

    def __init__(
        self,
        registry: ProviderRegistry,
        default_temperature: float = 0.7,
        default_max_tokens: int = 1000,
    ) -> None:
        self._registry = registry
        self._defaults = {
            "temperature": default_temperature,
            "max_tokens": default_max_tokens,
        }

    async def chat(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletion:
        """Send *messages* to the active provider.

        Raises
        ------
        NoActiveProviderError
            If no provider config is active.
        UnsupportedProviderError
            If the active config names an unknown backend.
        ProviderError
            Any adapter failure, already mapped to its specific subclass.
        """
        config = await self._registry.active_chat_config()
        options = self.resolve_options(config, temperature=temperature, max_tokens=max_tokens)
        provider = self._registry.chat_provider_for(config)

        logger.debug(
            "llm_dispatch",
            provider=config.provider,
            model=config.model,
            config_id=config.id,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            message_count=len(messages),
        )
        return await provider.chat(messages, options)

    def resolve_options(
        self,
        config: ProviderConfig,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatOptions:
        return merge_options(
            self._defaults,
            {"temperature": temperature, "max_tokens": max_tokens},
            config.extra_config,
        )
