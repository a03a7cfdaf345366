"""Chat-completion provider adapters."""

from notebook_rag.providers.llm.anthropic_provider import AnthropicChatProvider
from notebook_rag.providers.llm.gemini_provider import GeminiChatProvider
from notebook_rag.providers.llm.ollama_provider import OllamaChatProvider
from notebook_rag.providers.llm.openai_provider import OpenAIChatProvider

__all__ = [
    "AnthropicChatProvider",
    "GeminiChatProvider",
    "OllamaChatProvider",
    "OpenAIChatProvider",
]
