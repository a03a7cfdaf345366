"""OpenAI-compatible chat provider adapter.

Wraps the ``openai`` async client to implement :class:`IChatProvider`.
When the provider config carries a ``base_url`` (Azure proxies,
TogetherAI, Groq and other OpenAI-compatible APIs) the client points
there instead of the default OpenAI endpoint.

The OpenAI chat API accepts ``system``/``user``/``assistant`` roles
directly, so messages are forwarded unchanged.
"""

from __future__ import annotations

import openai
import structlog

from notebook_rag.interfaces.llm_provider import IChatProvider
from notebook_rag.models.provider import ChatCompletion, ChatOptions, LLMMessage, ProviderConfig
from notebook_rag.utils.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = structlog.get_logger(logger_name=__name__)


class OpenAIChatProvider(IChatProvider):
    """Chat provider backed by an OpenAI-compatible API.

    One instance is built per :class:`ProviderConfig`; the client is owned
    by the instance and never shared between configs.
    """

    def __init__(self, config: ProviderConfig, timeout: float = 60.0) -> None:
        self._config = config
        self._api_key = config.api_key or ""
        self._model = config.model
        self._timeout = timeout
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
    # IChatProvider implementation
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: list[LLMMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        """Send the conversation through the chat completions endpoint."""
        provider = self.get_provider_name()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ProviderAuthError(
                message=f"{provider} rejected the API key: {exc}",
                provider_name=provider,
            ) from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{provider} rate limit exceeded: {exc}",
                provider_name=provider,
            ) from exc
        except openai.APITimeoutError as exc:
            raise ProviderUnavailableError(
                message=f"{provider} timed out after {self._timeout:g}s",
                provider_name=provider,
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"Could not reach {provider}: {exc}",
                provider_name=provider,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(
                message=f"{provider} API error: {exc}",
                provider_name=provider,
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderResponseError(
                message=f"{provider} returned empty response",
                provider_name=provider,
            )
        logger.info(
            "openai_completion",
            model=self._model,
            provider=provider,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return ChatCompletion(text=content, provider=provider, model=self._model)

    def get_model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "openai"
