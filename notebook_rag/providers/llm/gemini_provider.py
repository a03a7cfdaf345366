"""Google Gemini chat provider adapter.

Wraps the ``google-genai`` SDK to implement :class:`IChatProvider`.
Each adapter owns a ``genai.Client`` built from its provider config, so
two Gemini configs with different keys can be used side by side.

Role mapping:
    - ``assistant`` becomes ``model`` (Gemini's vocabulary)
    - ``system`` messages are lifted into ``system_instruction``
"""

from __future__ import annotations

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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

_ROLE_MAP = {"user": "user", "assistant": "model"}


def _to_gemini_contents(
    messages: list[LLMMessage],
) -> tuple[str | None, list[types.Content]]:
    """Split *messages* into a system instruction and Gemini ``Content`` turns."""
    system_parts: list[str] = []
    contents: list[types.Content] = []
    for message in messages:
        if message.role == "system":
            system_parts.append(message.content)
            continue
        contents.append(
            types.Content(
                role=_ROLE_MAP[message.role],
                parts=[types.Part(text=message.content)],
            )
        )
    system = "\n\n".join(system_parts) if system_parts else None
    return system, contents


class GeminiChatProvider(IChatProvider):
    """Chat provider backed by the Google Gemini API."""

    def __init__(self, config: ProviderConfig, timeout: float = 60.0) -> None:
        self._config = config
        self._api_key = config.api_key or ""
        self._model = config.model
        # google-genai takes the timeout in milliseconds.
        self._client = genai.Client(
            api_key=self._api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    # ------------------------------------------------------------------
    # IChatProvider implementation
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: list[LLMMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        """Send the conversation through ``models.generate_content``."""
        system, contents = _to_gemini_contents(messages)
        generation_config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=generation_config,
            )
        except genai_errors.ClientError as exc:
            if exc.code in (401, 403):
                raise ProviderAuthError(
                    message=f"Gemini rejected the API key: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            if exc.code == 429:
                raise RateLimitError(
                    message=f"Gemini rate limit exceeded: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise ProviderError(
                message=f"Gemini API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except genai_errors.APIError as exc:
            raise ProviderError(
                message=f"Gemini API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(
                message=f"Could not reach Gemini: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = response.text
        if not text:
            raise ProviderResponseError(
                message="Gemini returned no text content",
                provider_name=self.get_provider_name(),
            )
        usage = response.usage_metadata
        logger.info(
            "gemini_completion",
            model=self._model,
            tokens=usage.total_token_count if usage else None,
        )
        return ChatCompletion(text=text, provider=self.get_provider_name(), model=self._model)

    def get_model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if a Gemini API key is configured."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "gemini"
