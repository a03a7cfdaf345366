"""Abstract base class for chat-completion providers.

Defines the contract for any large-language-model backend used to answer
chat turns, summarize sources and write audio-overview scripts.
Implementations wrap OpenAI, Anthropic, Google Gemini or a local Ollama
server.  Each adapter instance is built from one
:class:`~notebook_rag.models.provider.ProviderConfig` and owns its own
client, so swapping the active provider never touches shared state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from notebook_rag.models.provider import ChatCompletion, ChatOptions, LLMMessage


# Concrete implementations: OpenAIChatProvider, AnthropicChatProvider,
# GeminiChatProvider, OllamaChatProvider
# Located in: notebook_rag/providers/llm/
class IChatProvider(ABC):
    """Contract for chat-completion backends.

    Adapters normalize the provider-neutral ``system``/``user``/``assistant``
    roles into each backend's own vocabulary.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[LLMMessage],
        options: ChatOptions,
    ) -> ChatCompletion:
        """Send an ordered conversation and return the model's reply.

        Parameters
        ----------
        messages:
            Conversation in chronological order.  ``system`` messages may
            appear anywhere; adapters whose API takes a separate system
            parameter lift them out.
        options:
            Fully resolved sampling options (temperature, max_tokens).

        Returns
        -------
        ChatCompletion
            Reply text plus the provider name and model that produced it.

        Raises
        ------
        notebook_rag.utils.errors.ProviderAuthError
            If the backend rejects the credentials.
        notebook_rag.utils.errors.RateLimitError
            If the backend reports a rate limit.
        notebook_rag.utils.errors.ProviderUnavailableError
            On connection failures and timeouts.
        notebook_rag.utils.errors.ProviderResponseError
            If the reply is empty or has no text.
        notebook_rag.utils.errors.ProviderError
            For any other API failure.
        """

    @abstractmethod
    def get_model(self) -> str:
        """Return the model identifier requests are sent to."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the backend name, e.g. ``"openai"`` or ``"gemini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the adapter has what it needs to make a call.

        Checks credentials only; never contacts the remote service.
        """
