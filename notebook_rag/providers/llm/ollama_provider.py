"""Ollama chat provider adapter.

Ollama exposes an OpenAI-compatible ``/v1`` API, so this adapter reuses
:class:`OpenAIChatProvider` with the client pointed at the local server.
Role vocabulary and error mapping are identical.

Setup: install Ollama (https://ollama.ai), ``ollama pull llama3.1`` and
create a provider config with ``base_url=http://localhost:11434``.
"""

from __future__ import annotations

import httpx
import openai
from pydantic import ValidationError

from notebook_rag.models.admin import OllamaModel
from notebook_rag.models.provider import ProviderConfig
from notebook_rag.providers.llm.openai_provider import OpenAIChatProvider
from notebook_rag.utils.errors import ProviderResponseError, ProviderUnavailableError

_DEFAULT_BASE_URL = "http://localhost:11434"


def ollama_v1_url(base_url: str | None) -> str:
    """Return the OpenAI-compatible endpoint for an Ollama base URL."""
    base = (base_url or _DEFAULT_BASE_URL).rstrip("/")
    if base.endswith("/v1"):
        return base
    return f"{base}/v1"


def ollama_root_url(base_url: str | None) -> str:
    """Return the native API root for an Ollama base URL (no ``/v1``)."""
    base = (base_url or _DEFAULT_BASE_URL).rstrip("/")
    return base.removesuffix("/v1")


async def list_ollama_models(
    base_url: str | None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> list[OllamaModel]:
    """Return the models installed on the Ollama server at *base_url*.

    Raises
    ------
    ProviderUnavailableError
        If the server cannot be reached or answers with an error status.
    ProviderResponseError
        If the reply is not a ``{"models": [...]}`` document.
    """
    url = f"{ollama_root_url(base_url)}/api/tags"
    client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
    try:
        response = await client.get(url)
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ProviderUnavailableError(
            message=f"Could not list models at {url}: {exc}",
            provider_name="ollama",
        ) from exc
    except ValueError as exc:
        raise ProviderResponseError(
            message=f"Model list from {url} is not JSON: {exc}",
            provider_name="ollama",
        ) from exc
    finally:
        if http_client is None:
            await client.aclose()

    models = payload.get("models") if isinstance(payload, dict) else None
    if not isinstance(models, list):
        raise ProviderResponseError(
            message=f"Model list from {url} has no 'models' array",
            provider_name="ollama",
        )
    try:
        return [OllamaModel.model_validate(m) for m in models]
    except ValidationError as exc:
        raise ProviderResponseError(
            message=f"Unexpected model entry from {url}: {exc}",
            provider_name="ollama",
        ) from exc


class OllamaChatProvider(OpenAIChatProvider):
    """Chat provider backed by a local Ollama server."""

    def __init__(self, config: ProviderConfig, timeout: float = 60.0) -> None:
        self._base_url = config.base_url or _DEFAULT_BASE_URL
        super().__init__(config, timeout=timeout)

    def _build_client(self) -> openai.AsyncOpenAI:
        # Ollama ignores the key, but the SDK refuses an empty one.
        return openai.AsyncOpenAI(
            base_url=ollama_v1_url(self._base_url),
            api_key="ollama",
            timeout=openai.Timeout(self._timeout, connect=5.0),
        )

    def is_available(self) -> bool:
        return bool(self._base_url)

    def get_provider_name(self) -> str:
        return "ollama"
