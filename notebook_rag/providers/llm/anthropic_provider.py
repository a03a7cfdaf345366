"""Anthropic chat provider adapter.

Wraps the ``anthropic`` async client to implement :class:`IChatProvider`.

Key differences from the OpenAI adapter:
    - Uses Anthropic's Messages API (not chat.completions)
    - System prompts are a separate parameter, not messages in the list,
      so every ``system`` message is lifted out and joined
    - The conversation must alternate user/assistant; consecutive turns
      from the same role are merged
    - Response content is a list of blocks, so text blocks are joined
"""

from __future__ import annotations

import anthropic
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


def _to_anthropic_messages(
    messages: list[LLMMessage],
) -> tuple[str | None, list[dict[str, str]]]:
    """Split *messages* into a system prompt and an alternating turn list."""
    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for message in messages:
        if message.role == "system":
            system_parts.append(message.content)
            continue
        if turns and turns[-1]["role"] == message.role:
            turns[-1]["content"] += "\n\n" + message.content
        else:
            turns.append({"role": message.role, "content": message.content})
    # The Messages API requires the first turn to come from the user.
    while turns and turns[0]["role"] == "assistant":
        turns.pop(0)
    system = "\n\n".join(system_parts) if system_parts else None
    return system, turns


class AnthropicChatProvider(IChatProvider):
    """Chat provider backed by the Anthropic Claude API."""

    def __init__(self, config: ProviderConfig, timeout: float = 60.0) -> None:
        self._config = config
        self._api_key = config.api_key or ""
        self._model = config.model
        self._timeout = timeout
        client_kwargs: dict = {"api_key": self._api_key, "timeout": timeout}
        if config.base_url:
            client_kwargs["base_url"] = config.base_url
        self._client = anthropic.AsyncAnthropic(**client_kwargs)

    # ------------------------------------------------------------------
    # IChatProvider implementation
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: list[LLMMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        """Send the conversation through the Messages API."""
        system, turns = _to_anthropic_messages(messages)
        request: dict = {
            "model": self._model,
            "max_tokens": options.max_tokens,
            "messages": turns,
            "temperature": options.temperature,
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise ProviderAuthError(
                message=f"Anthropic rejected the API key: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.RateLimitError as exc:
            raise RateLimitError(
                message=f"Anthropic rate limit exceeded: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"Could not reach Anthropic: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIError as exc:
            raise ProviderError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks or not "".join(text_blocks).strip():
            raise ProviderResponseError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return ChatCompletion(
            text="\n".join(text_blocks),
            provider=self.get_provider_name(),
            model=self._model,
        )

    def get_model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "anthropic"
