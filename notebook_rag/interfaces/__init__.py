"""Public interface definitions for all external collaborators.

Every external system the notebook pipeline talks to is reached through
one of the abstract base classes in this package.  Concrete adapters live
in ``notebook_rag/providers/`` and are constructed once in
``notebook_rag/main.py``, then passed into the services by constructor so
tests can substitute fakes.

CONCRETE PROVIDER MAP:
    Interface                  ->  Concrete implementations
    ---------------------------------------------------------------------
    IChatProvider              ->  OpenAIChatProvider, AnthropicChatProvider,
                                   GeminiChatProvider, OllamaChatProvider
    IEmbeddingProvider         ->  OpenAIEmbeddingProvider,
                                   OllamaEmbeddingProvider,
                                   ActiveEmbeddingProvider
    IVectorStoreProvider       ->  ChromaDBProvider
    INotebookStore             ->  SQLiteNotebookStore
    IProviderConfigStore       ->  SQLiteNotebookStore
    IAudioRenderer             ->  PlaceholderAudioRenderer
"""

from notebook_rag.interfaces.audio_renderer import IAudioRenderer
from notebook_rag.interfaces.embedding_provider import IEmbeddingProvider
from notebook_rag.interfaces.llm_provider import IChatProvider
from notebook_rag.interfaces.notebook_store import INotebookStore, IProviderConfigStore
from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IAudioRenderer",
    "IChatProvider",
    "IEmbeddingProvider",
    "INotebookStore",
    "IProviderConfigStore",
    "IVectorStoreProvider",
]
