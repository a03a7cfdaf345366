"""Text extraction: turns any :class:`Source` into plain text.

Dispatches on ``source.kind`` to one of the source processors.  PyMuPDF
and python-docx are synchronous, so file parsing runs in a worker thread
via ``asyncio.to_thread`` and never blocks the event loop.

No retries happen here; a failed extraction surfaces as an
:class:`ExtractionError` subclass and the source is marked failed.
"""

from __future__ import annotations

import asyncio

import structlog

from notebook_rag.models.notebook import Source, SourceKind
from notebook_rag.services.ingestion.source_processors import (
    DocumentProcessor,
    PDFProcessor,
    TranscriptPlaceholderProcessor,
    WebPageProcessor,
)
from notebook_rag.utils.errors import UnreadableSourceError, UnsupportedSourceError

logger = structlog.get_logger(logger_name=__name__)


class TextExtractor:
    """Routes a source to the processor for its kind.

    Parameters
    ----------
    web_processor:
        Fetcher for website sources.  Injected so tests can pass one backed
        by a mock HTTP transport.
    """

    def __init__(
        self,
        web_processor: WebPageProcessor | None = None,
        http_timeout: float = 30.0,
    ) -> None:
        self._pdf_processor = PDFProcessor()
        self._document_processor = DocumentProcessor()
        self._transcripts = TranscriptPlaceholderProcessor()
        self._web_processor = web_processor or WebPageProcessor(timeout=http_timeout)

    async def extract(self, source: Source) -> str:
        """Return the plain text of *source*.

        Raises
        ------
        SourceFetchError
            When a website cannot be fetched.
        UnreadableSourceError
            When a stored file is missing, corrupt, or undecodable.
        UnsupportedSourceError
            When the kind or container format has no extractor.
        """
        logger.debug("extraction_started", source_id=source.id, kind=source.kind.value)

        if source.kind == SourceKind.PDF:
            text = await asyncio.to_thread(
                self._pdf_processor.extract, self._require_file(source)
            )
        elif source.kind == SourceKind.TEXT:
            if source.content is not None:
                text = source.content
            else:
                text = await asyncio.to_thread(
                    self._document_processor.extract, self._require_file(source)
                )
        elif source.kind == SourceKind.WEBSITE:
            text = await self._web_processor.extract(self._require_url(source))
        elif source.kind == SourceKind.YOUTUBE:
            text = self._transcripts.youtube(self._require_url(source))
        elif source.kind == SourceKind.AUDIO:
            text = self._transcripts.audio(self._require_file(source))
        else:
            raise UnsupportedSourceError(
                message=f"No extractor for source kind {source.kind!r}",
                provider_name="extractor",
            )

        logger.info(
            "extraction_complete",
            source_id=source.id,
            kind=source.kind.value,
            text_length=len(text),
        )
        return text

    async def close(self) -> None:
        await self._web_processor.close()

    @staticmethod
    def _require_file(source: Source) -> str:
        if not source.file_path:
            raise UnreadableSourceError(
                message=f"Source {source.id} has no stored file",
                provider_name=source.kind.value,
            )
        return source.file_path

    @staticmethod
    def _require_url(source: Source) -> str:
        if not source.url:
            raise UnreadableSourceError(
                message=f"Source {source.id} has no URL",
                provider_name=source.kind.value,
            )
        return source.url
