"""Retrieval-augmented chat over one notebook's sources.

A chat turn follows the classic RAG flow:

  1. GUARD     -- the notebook must exist and own at least one completed
                  source; otherwise nothing is persisted.
  2. PERSIST   -- the human message is appended to the chat log.
  3. RETRIEVE  -- the top-k chunks of *this notebook only* are fetched.
  4. HISTORY   -- the most recent messages before this turn are loaded in
                  chronological order.
  5. GENERATE  -- ``[system(context), *history, user]`` goes to the active
                  LLM provider.
  6. CITE      -- the answer is split into segments with round-robin
                  citations.
  7. PERSIST   -- the segmented answer is stored as the AI message, tagged
                  with provider and model.

Any failure in steps 3-6 propagates as a typed error and no AI message is
written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from notebook_rag.models.chat import ChatMessage, ChatTurnResult, MessageRole
from notebook_rag.models.notebook import SourceStatus
from notebook_rag.models.provider import LLMMessage
from notebook_rag.models.rag import RetrievedChunk
from notebook_rag.services.citation_service import CitationService
from notebook_rag.utils.errors import (
    ChatError,
    ConfigurationError,
    NoProcessedSourcesError,
    NotFoundError,
)

if TYPE_CHECKING:
    from notebook_rag.interfaces.notebook_store import INotebookStore
    from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
    from notebook_rag.services.llm_service import LLMService

logger = structlog.get_logger(logger_name=__name__)

NO_INFORMATION_REPLY = "Sorry, I don't have information about that in my sources."

_SYSTEM_PROMPT = (
    "You are a helpful and precise research assistant. Answer questions using "
    "ONLY the information provided in the context below. If the answer is not "
    f'in the context, say "{NO_INFORMATION_REPLY}" Do not make up information.'
    "\n\nContext:\n{context}"
)


class ChatService:
    """Answers user questions about a notebook with citations.

    Parameters
    ----------
    store:
        Notebook store (chat log, source status).
    vector_store:
        Notebook-scoped similarity search.
    llm_service:
        Dispatches to the active provider.
    citation_service:
        Builds segmented, cited answers.
    top_k:
        Number of chunks retrieved per turn.
    history_limit:
        Number of earlier messages sent back to the LLM.
    """

    def __init__(
        self,
        store: INotebookStore,
        vector_store: IVectorStoreProvider,
        llm_service: LLMService,
        citation_service: CitationService | None = None,
        top_k: int = 5,
        history_limit: int = 10,
    ) -> None:
        self._store = store
        self._vector_store = vector_store
        self._llm_service = llm_service
        self._citation_service = citation_service or CitationService()
        self._top_k = top_k
        self._history_limit = history_limit

    async def answer(self, notebook_id: str, user_message: str) -> ChatTurnResult:
        """Run one chat turn and return the persisted message pair.

        Raises
        ------
        NotFoundError
            If the notebook does not exist.
        NoProcessedSourcesError
            If the notebook has no completed source.
        ChatError
            If no provider is configured (chained from the configuration error).
        RetrievalError, ProviderError
            Propagated from retrieval and the LLM call.
        """
        await self._require_notebook(notebook_id)
        completed = await self._store.list_sources(notebook_id, status=SourceStatus.COMPLETED)
        if not completed:
            raise NoProcessedSourcesError(
                message=f"Notebook {notebook_id} has no processed sources",
            )

        human = await self._store.add_message(notebook_id, MessageRole.HUMAN, user_message)

        retrieved = await self._vector_store.search(
            user_message, notebook_id=notebook_id, limit=self._top_k
        )
        history = await self._store.get_recent_messages(
            notebook_id, limit=self._history_limit, before_id=human.id
        )

        messages = [
            LLMMessage(role="system", content=self._system_prompt(retrieved)),
            *self._history_to_messages(history),
            LLMMessage(role="user", content=user_message),
        ]

        try:
            completion = await self._llm_service.chat(messages)
        except ConfigurationError as exc:
            raise ChatError(message=f"Cannot answer: {exc.message}") from exc

        answer = self._citation_service.build(completion.text, retrieved)
        ai = await self._store.add_message(
            notebook_id,
            MessageRole.AI,
            answer.model_dump_json(),
            provider=completion.provider,
            model=completion.model,
        )

        logger.info(
            "chat_turn_complete",
            notebook_id=notebook_id,
            retrieved=len(retrieved),
            history=len(history),
            segments=len(answer.segments),
            provider=completion.provider,
            model=completion.model,
        )
        return ChatTurnResult(user_message=human, ai_message=ai, answer=answer)

    async def history(self, notebook_id: str) -> list[ChatMessage]:
        """Return the full chat log of *notebook_id* in chronological order."""
        await self._require_notebook(notebook_id)
        return await self._store.list_messages(notebook_id)

    async def clear_history(self, notebook_id: str) -> int:
        """Delete the chat log of *notebook_id*; return the number of messages removed."""
        await self._require_notebook(notebook_id)
        removed = await self._store.clear_messages(notebook_id)
        logger.info("chat_history_cleared", notebook_id=notebook_id, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_notebook(self, notebook_id: str) -> None:
        if await self._store.get_notebook(notebook_id) is None:
            raise NotFoundError(message=f"Notebook not found: {notebook_id}")

    @staticmethod
    def _system_prompt(retrieved: list[RetrievedChunk]) -> str:
        context = "\n\n".join(r.chunk.text for r in retrieved)
        return _SYSTEM_PROMPT.replace("{context}", context)

    @staticmethod
    def _history_to_messages(history: list[ChatMessage]) -> list[LLMMessage]:
        return [
            LLMMessage(
                role="user" if m.role is MessageRole.HUMAN else "assistant",
                content=m.plain_text(),
            )
            for m in history
        ]
