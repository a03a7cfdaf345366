"""Notebook and source management.

CRUD for notebooks and their sources, plus the entry points that hand
long-running work to the :class:`BackgroundTaskRunner`:

- adding a source persists it as ``pending`` and submits ingestion;
- ``request_generation`` marks the notebook ``generating`` and submits
  :meth:`NotebookService.generate_content`;
- ``request_audio_overview`` does the same for the audio overview.

Deleting a notebook cascades to its vector chunks, stored files, sources,
chat log and audio asset.
"""

from __future__ import annotations

import asyncio
import json
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from notebook_rag.models.notebook import (
    URL_SOURCE_KINDS,
    GenerationStatus,
    Notebook,
    Source,
    SourceKind,
    SourceStatus,
)
from notebook_rag.models.provider import LLMMessage
from notebook_rag.services.ingestion.ingestion_service import ensure_resubmittable
from notebook_rag.services.ingestion.source_processors.web_processor import validate_url
from notebook_rag.utils.errors import (
    NotFoundError,
    UnreadableSourceError,
    UnsupportedSourceError,
)

if TYPE_CHECKING:
    from notebook_rag.interfaces.notebook_store import INotebookStore
    from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
    from notebook_rag.pipeline.task_runner import BackgroundTaskRunner
    from notebook_rag.services.audio_overview_service import AudioOverviewService
    from notebook_rag.services.ingestion.ingestion_service import IngestionService
    from notebook_rag.services.llm_service import LLMService

logger = structlog.get_logger(logger_name=__name__)

NOTEBOOK_COLORS = (
    "slate", "gray", "zinc", "neutral", "stone", "red", "orange", "amber",
    "yellow", "lime", "green", "emerald", "teal", "cyan", "sky", "blue",
    "indigo", "violet", "purple", "fuchsia", "pink", "rose",
)

DEFAULT_TITLE = "Untitled notebook"
DEFAULT_SUMMARY = "Could not generate a summary."
DEFAULT_ICON = "📝"
DEFAULT_COLOR = "gray"

_MAX_EXAMPLE_QUESTIONS = 5

_GENERIC_MIME_TYPES = frozenset({"application/octet-stream", "binary/octet-stream"})

_UPLOAD_MIME_KINDS = {
    "application/pdf": SourceKind.PDF,
    "text/plain": SourceKind.TEXT,
    "text/markdown": SourceKind.TEXT,
    "application/msword": SourceKind.TEXT,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": SourceKind.TEXT,
    "audio/mpeg": SourceKind.AUDIO,
    "audio/wav": SourceKind.AUDIO,
    "audio/x-wav": SourceKind.AUDIO,
    "audio/mp4": SourceKind.AUDIO,
}

_UPLOAD_SUFFIX_KINDS = {
    ".pdf": SourceKind.PDF,
    ".txt": SourceKind.TEXT,
    ".text": SourceKind.TEXT,
    ".md": SourceKind.TEXT,
    ".markdown": SourceKind.TEXT,
    ".doc": SourceKind.TEXT,
    ".docx": SourceKind.TEXT,
    ".mp3": SourceKind.AUDIO,
    ".wav": SourceKind.AUDIO,
    ".m4a": SourceKind.AUDIO,
}

_JSON_FENCE_RE = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_GENERATION_SYSTEM_PROMPT = (
    "Based on the content provided, generate a fitting title and a summary of "
    "the document. Also provide a suitable UTF-8 emoji for the notebook and a "
    "color from the following list: " + ", ".join(NOTEBOOK_COLORS) + ".\n\n"
    "Also generate a list of 5 example questions that could be asked about this "
    "document, at most 10 words each.\n\n"
    "Return only JSON with the keys: title, summary, notebook_icon, "
    "background_color, example_questions."
)


@dataclass(frozen=True)
class GeneratedContent:
    """Title, summary and decoration parsed from the LLM reply."""

    title: str = DEFAULT_TITLE
    summary: str = DEFAULT_SUMMARY
    icon: str = DEFAULT_ICON
    color: str = DEFAULT_COLOR
    example_questions: list[str] = field(default_factory=list)


def parse_generated_content(text: str) -> GeneratedContent:
    """Parse the generation reply, falling back to defaults field by field.

    A fenced ```json block is preferred, then the first ``{...}`` span,
    then the whole text.  Unparseable replies yield all defaults; colors
    outside the palette become ``gray``.
    """
    fence = _JSON_FENCE_RE.search(text)
    if fence:
        candidate = fence.group(1)
    else:
        obj = _JSON_OBJECT_RE.search(text)
        candidate = obj.group(0) if obj else text

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("notebook_generation_parse_failed", error=str(exc), preview=text[:200])
        return GeneratedContent()
    if not isinstance(data, dict):
        logger.warning("notebook_generation_not_object", preview=text[:200])
        return GeneratedContent()

    color = str(data.get("background_color") or DEFAULT_COLOR).strip().lower()
    if color not in NOTEBOOK_COLORS:
        color = DEFAULT_COLOR

    questions = data.get("example_questions") or []
    if not isinstance(questions, list):
        questions = []

    return GeneratedContent(
        title=str(data.get("title") or DEFAULT_TITLE),
        summary=str(data.get("summary") or DEFAULT_SUMMARY),
        icon=str(data.get("notebook_icon") or DEFAULT_ICON),
        color=color,
        example_questions=[str(q) for q in questions if str(q).strip()][:_MAX_EXAMPLE_QUESTIONS],
    )


def infer_file_kind(filename: str, content_type: str | None) -> SourceKind:
    """Classify an upload as pdf, audio or text.

    A specific MIME type must be on the upload allowlist; generic ones
    (missing or ``application/octet-stream``) defer to the extension.

    Raises
    ------
    UnsupportedSourceError
        If the MIME type or extension is not an accepted upload format.
    """
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    suffix = Path(filename).suffix.lower()
    if mime and mime not in _GENERIC_MIME_TYPES:
        kind = _UPLOAD_MIME_KINDS.get(mime)
        detail = f"file type {mime}"
    else:
        kind = _UPLOAD_SUFFIX_KINDS.get(suffix)
        detail = f"file extension {suffix or '(none)'}"
    if kind is None:
        raise UnsupportedSourceError(
            message=f"Unsupported {detail} for {filename}",
            provider_name="upload",
        )
    return kind


class NotebookService:
    """Notebook and source lifecycle, wired to the background worker."""

    def __init__(
        self,
        store: INotebookStore,
        vector_store: IVectorStoreProvider,
        llm_service: LLMService,
        ingestion_service: IngestionService,
        audio_service: AudioOverviewService,
        runner: BackgroundTaskRunner,
        upload_dir: str | Path = "data/uploads",
        generation_source_limit: int = 5,
        source_excerpt_chars: int = 1000,
    ) -> None:
        self._store = store
        self._vector_store = vector_store
        self._llm_service = llm_service
        self._ingestion = ingestion_service
        self._audio = audio_service
        self._runner = runner
        self._upload_dir = Path(upload_dir)
        self._generation_source_limit = generation_source_limit
        self._source_excerpt_chars = source_excerpt_chars

    # ------------------------------------------------------------------
    # Notebooks
    # ------------------------------------------------------------------

    async def create_notebook(
        self,
        title: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
    ) -> Notebook:
        return await self._store.create_notebook(
            title=title, description=description, icon=icon, color=color
        )

    async def list_notebooks(self) -> list[Notebook]:
        return await self._store.list_notebooks()

    async def get_notebook(self, notebook_id: str) -> Notebook:
        notebook = await self._store.get_notebook(notebook_id)
        if notebook is None:
            raise NotFoundError(message=f"Notebook not found: {notebook_id}")
        return notebook

    async def update_notebook(self, notebook_id: str, **fields: Any) -> Notebook:
        await self.get_notebook(notebook_id)
        updated = await self._store.update_notebook(notebook_id, **fields)
        if updated is None:
            raise NotFoundError(message=f"Notebook not found: {notebook_id}")
        return updated

    async def delete_notebook(self, notebook_id: str) -> None:
        """Delete a notebook with its chunks, files, sources, chat log and audio."""
        notebook = await self.get_notebook(notebook_id)
        sources = await self._store.list_sources(notebook_id)

        removed_chunks = await self._vector_store.delete_by_notebook(notebook_id)
        for source in sources:
            await self._remove_stored_file(source)
        await self._audio.remove_asset(notebook)
        await self._store.delete_notebook(notebook_id)

        logger.info(
            "notebook_cascade_deleted",
            notebook_id=notebook_id,
            sources=len(sources),
            chunks=removed_chunks,
        )

    # ------------------------------------------------------------------
    # Notebook content generation
    # ------------------------------------------------------------------

    async def request_generation(self, notebook_id: str) -> Notebook:
        """Mark the notebook ``generating`` and submit content generation."""
        await self.get_notebook(notebook_id)
        await self._store.set_generation_status(notebook_id, GenerationStatus.GENERATING)
        self._runner.submit(f"generate:{notebook_id}", self.generate_content(notebook_id))
        return await self.get_notebook(notebook_id)

    async def generate_content(self, notebook_id: str) -> GenerationStatus:
        """Generate title, summary, icon, color and example questions.  Never raises."""
        logger.info("notebook_generation_started", notebook_id=notebook_id)
        try:
            sources = await self._store.list_sources(notebook_id, status=SourceStatus.COMPLETED)
            parts = [
                s.summary or (s.extracted_text or "")[: self._source_excerpt_chars]
                for s in sources[: self._generation_source_limit]
            ]
            content = "\n\n".join(p for p in parts if p)
            if not content:
                await self._store.set_generation_status(notebook_id, GenerationStatus.FAILED)
                logger.warning("notebook_generation_no_sources", notebook_id=notebook_id)
                return GenerationStatus.FAILED

            completion = await self._llm_service.chat(
                [
                    LLMMessage(role="system", content=_GENERATION_SYSTEM_PROMPT),
                    LLMMessage(role="user", content=content),
                ],
            )
            generated = parse_generated_content(completion.text)
            await self._store.save_generated_content(
                notebook_id,
                title=generated.title,
                description=generated.summary,
                icon=generated.icon,
                color=generated.color,
                example_questions=generated.example_questions,
            )
        except Exception as exc:
            logger.error(
                "notebook_generation_failed",
                notebook_id=notebook_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            await self._store.set_generation_status(notebook_id, GenerationStatus.FAILED)
            return GenerationStatus.FAILED

        logger.info("notebook_generation_complete", notebook_id=notebook_id, title=generated.title)
        return GenerationStatus.COMPLETED

    # ------------------------------------------------------------------
    # Audio overview
    # ------------------------------------------------------------------

    async def request_audio_overview(self, notebook_id: str) -> None:
        """Mark the audio ``generating`` and submit script generation."""
        await self._audio.request_generation(notebook_id)
        self._runner.submit(f"audio:{notebook_id}", self._audio.generate(notebook_id))

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def list_sources(self, notebook_id: str) -> list[Source]:
        await self.get_notebook(notebook_id)
        return await self._store.list_sources(notebook_id)

    async def get_source(self, source_id: str) -> Source:
        source = await self._store.get_source(source_id)
        if source is None:
            raise NotFoundError(message=f"Source not found: {source_id}")
        return source

    async def add_text_source(
        self,
        notebook_id: str,
        content: str,
        title: str | None = None,
    ) -> Source:
        if not content.strip():
            raise UnreadableSourceError(message="Text content is empty", provider_name="text")
        await self.get_notebook(notebook_id)
        source = Source(
            id=str(uuid.uuid4()),
            notebook_id=notebook_id,
            kind=SourceKind.TEXT,
            title=title or "Untitled text",
            content=content,
        )
        return await self._create_and_submit(source)

    async def add_url_source(
        self,
        notebook_id: str,
        url: str,
        kind: SourceKind = SourceKind.WEBSITE,
        title: str | None = None,
    ) -> Source:
        kind = SourceKind(kind)
        if kind not in URL_SOURCE_KINDS:
            raise UnsupportedSourceError(
                message=f"URL sources must be website or youtube, got {kind.value}",
            )
        validate_url(url)
        await self.get_notebook(notebook_id)
        source = Source(
            id=str(uuid.uuid4()),
            notebook_id=notebook_id,
            kind=kind,
            title=title or url,
            url=url,
        )
        return await self._create_and_submit(source)

    async def add_file_source(
        self,
        notebook_id: str,
        filename: str,
        data: bytes,
        content_type: str | None = None,
        title: str | None = None,
    ) -> Source:
        """Store uploaded bytes under ``upload_dir`` and submit ingestion."""
        await self.get_notebook(notebook_id)
        kind = infer_file_kind(filename, content_type)
        source_id = str(uuid.uuid4())
        path = self._upload_dir / f"{source_id}{Path(filename).suffix.lower()}"

        def _write() -> None:
            self._upload_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info(
            "upload_stored",
            source_id=source_id,
            filename=filename,
            kind=kind.value,
            size=len(data),
        )
        source = Source(
            id=source_id,
            notebook_id=notebook_id,
            kind=kind,
            title=title or filename,
            file_path=str(path),
        )
        return await self._create_and_submit(source)

    async def reprocess_source(self, source_id: str) -> Source:
        """Resubmit a failed source to the worker.

        Raises
        ------
        NotFoundError
            If the source does not exist.
        SourceBusyError
            If the source is processing or already completed.
        """
        source = await self.get_source(source_id)
        ensure_resubmittable(source)
        self._runner.submit(f"ingest:{source_id}", self._ingestion.process_submitted(source_id))
        logger.info("source_resubmitted", source_id=source_id)
        return source

    async def rename_source(self, source_id: str, title: str) -> Source:
        """Change a source's display title.

        Chunks already stored keep the title they were ingested with; only
        the source row changes.
        """
        await self.get_source(source_id)
        renamed = await self._store.rename_source(source_id, title)
        if renamed is None:
            raise NotFoundError(message=f"Source not found: {source_id}")
        logger.info("source_renamed", source_id=source_id, title=title)
        return renamed

    async def delete_source(self, source_id: str) -> None:
        """Delete a source with its chunks and stored file."""
        source = await self.get_source(source_id)
        removed = await self._vector_store.delete_by_source(source_id)
        await self._remove_stored_file(source)
        await self._store.delete_source(source_id)
        logger.info("source_deleted", source_id=source_id, chunks=removed)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _create_and_submit(self, source: Source) -> Source:
        created = await self._store.create_source(source)
        self._runner.submit(f"ingest:{created.id}", self._ingestion.process_submitted(created.id))
        return created

    async def _remove_stored_file(self, source: Source) -> None:
        if not source.file_path:
            return
        path = Path(source.file_path)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.warning(
                "source_file_delete_failed",
                source_id=source.id,
                file_path=source.file_path,
                error=str(exc),
            )
