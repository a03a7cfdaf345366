"""Orchestrator for the source ingestion pipeline.

Pipeline stages: **claim -> extract -> summarize -> chunk -> embed + store -> complete**.

The :class:`IngestionService` coordinates the text extractor, the LLM
service, the chunker and the vector store without any of them knowing
about each other.  Every attempt follows the same flow:

    1. Claim       -- compare-and-swap ``pending|failed -> processing`` in
                      the store; a lost claim means another attempt owns
                      the source and this one does no work.
    2. Extract     -- :class:`TextExtractor` turns the source into text.
    3. Summarize   -- the LLM summarizes the first ``summary_input_chars``
                      characters; failures degrade to a fixed message.
    4. Chunk       -- :class:`TextChunker` builds the chunk batch.
    5. Store       -- stale chunks of the source are removed, then the
                      batch is embedded and written in one call.
    6. Complete    -- text, summary and ``completed`` status are persisted
                      in a single row update.

Any failure after the claim removes this source's chunks and forces the
status to ``failed`` with the error recorded.  Failures are returned in
the :class:`IngestionResult`, never raised to the caller.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from notebook_rag.models.notebook import Source, SourceStatus
from notebook_rag.models.provider import LLMMessage
from notebook_rag.models.rag import IngestionResult
from notebook_rag.services.ingestion.chunker import TextChunker
from notebook_rag.services.ingestion.text_extractor import TextExtractor
from notebook_rag.utils.errors import NotFoundError, SourceBusyError

if TYPE_CHECKING:
    from notebook_rag.interfaces.notebook_store import INotebookStore
    from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
    from notebook_rag.services.llm_service import LLMService

logger = structlog.get_logger(logger_name=__name__)

SUMMARY_FALLBACK = "Could not generate a summary for this content."

_SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise summaries. "
    "Write a concise summary (max 200 words) of the following content. "
    "Focus on the main topics, key points and conclusions."
)


def ensure_resubmittable(source: Source) -> None:
    """Raise :class:`SourceBusyError` unless *source* is failed or never claimed."""
    if source.status not in (SourceStatus.FAILED, SourceStatus.PENDING):
        raise SourceBusyError(
            message=f"Only failed sources can be resubmitted (status: {source.status.value})",
        )


class IngestionService:
    """Runs one source through extraction, summarization, chunking and storage.

    Parameters
    ----------
    store:
        Notebook store holding source rows and their status.
    vector_store:
        Destination for the embedded chunk batch.
    llm_service:
        Used for the source summary.
    extractor:
        Converts sources to plain text.
    chunker:
        Splits extracted text into :class:`DocumentChunk` objects.
    summary_input_chars:
        How much of the extracted text is sent to the summarizer.
    """

    def __init__(
        self,
        store: INotebookStore,
        vector_store: IVectorStoreProvider,
        llm_service: LLMService,
        extractor: TextExtractor,
        chunker: TextChunker,
        summary_input_chars: int = 5000,
    ) -> None:
        self._store = store
        self._vector_store = vector_store
        self._llm_service = llm_service
        self._extractor = extractor
        self._chunker = chunker
        self._summary_input_chars = summary_input_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_source(self, source_id: str) -> IngestionResult:
        """Claim *source_id* and run the full pipeline on it.

        Raises
        ------
        NotFoundError
            If the source does not exist.
        SourceBusyError
            If the claim is lost (already processing or completed).
        """
        if not await self._store.claim_source_for_processing(source_id):
            source = await self._store.get_source(source_id)
            if source is None:
                raise NotFoundError(message=f"Source not found: {source_id}")
            raise SourceBusyError(
                message=f"Source {source_id} is {source.status.value}; not claimable",
            )

        source = await self._store.get_source(source_id)
        if source is None:
            # Deleted between claim and read.
            raise NotFoundError(message=f"Source not found: {source_id}")
        return await self._run_pipeline(source)

    async def process_submitted(self, source_id: str) -> IngestionResult | None:
        """Worker entry point: like :meth:`process_source`, but a lost claim is a no-op."""
        try:
            return await self.process_source(source_id)
        except SourceBusyError:
            logger.info("ingestion_skipped_busy", source_id=source_id)
            return None

    async def reprocess_source(self, source_id: str) -> IngestionResult:
        """Explicitly re-run ingestion for a failed source.

        Raises
        ------
        NotFoundError
            If the source does not exist.
        SourceBusyError
            If the source is not in ``failed`` (or never-claimed ``pending``) state.
        """
        source = await self._store.get_source(source_id)
        if source is None:
            raise NotFoundError(message=f"Source not found: {source_id}")
        ensure_resubmittable(source)
        logger.info("source_resubmitted", source_id=source_id, previous_error=source.error)
        return await self.process_source(source_id)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run_pipeline(self, source: Source) -> IngestionResult:
        start = time.monotonic()
        logger.info(
            "ingestion_started",
            source_id=source.id,
            notebook_id=source.notebook_id,
            kind=source.kind.value,
        )
        try:
            text = await self._extractor.extract(source)
            summary = await self._summarize(source, text)

            notebook = await self._store.get_notebook(source.notebook_id)
            chunks = self._chunker.chunk(
                text,
                source,
                notebook_title=notebook.title if notebook else None,
            )

            await self._vector_store.delete_by_source(source.id)
            stored = await self._vector_store.add_chunks(chunks)

            await self._store.complete_source(source.id, extracted_text=text, summary=summary)
        except Exception as exc:
            return await self._fail(source, exc, start)

        elapsed = round(time.monotonic() - start, 3)
        logger.info(
            "source_ingested",
            source_id=source.id,
            notebook_id=source.notebook_id,
            chunks=stored,
            text_length=len(text),
            ingestion_time=elapsed,
        )
        return IngestionResult(
            source_id=source.id,
            status=SourceStatus.COMPLETED,
            chunks_created=stored,
            ingestion_time=elapsed,
        )

    async def _summarize(self, source: Source, text: str) -> str:
        """Ask the active LLM for a short summary; degrade on any failure."""
        excerpt = text[: self._summary_input_chars]
        if not excerpt.strip():
            return SUMMARY_FALLBACK
        try:
            completion = await self._llm_service.chat(
                [
                    LLMMessage(role="system", content=_SUMMARY_SYSTEM_PROMPT),
                    LLMMessage(role="user", content=excerpt),
                ],
            )
        except Exception as exc:
            logger.warning(
                "source_summary_failed",
                source_id=source.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return SUMMARY_FALLBACK
        return completion.text.strip() or SUMMARY_FALLBACK

    async def _fail(self, source: Source, exc: Exception, start: float) -> IngestionResult:
        """Roll back this attempt's chunks and mark the source failed."""
        message = str(exc) or type(exc).__name__
        try:
            await self._vector_store.delete_by_source(source.id)
        except Exception as cleanup_exc:
            logger.error(
                "ingestion_rollback_failed",
                source_id=source.id,
                error_type=type(cleanup_exc).__name__,
                error=str(cleanup_exc),
            )
        await self._store.fail_source(source.id, message)

        elapsed = round(time.monotonic() - start, 3)
        logger.error(
            "ingestion_failed",
            source_id=source.id,
            notebook_id=source.notebook_id,
            error_type=type(exc).__name__,
            error=message,
            ingestion_time=elapsed,
        )
        return IngestionResult(
            source_id=source.id,
            status=SourceStatus.FAILED,
            ingestion_time=elapsed,
            error=message,
        )
