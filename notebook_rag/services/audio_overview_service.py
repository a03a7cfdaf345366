"""Audio-overview generation for notebooks.

Turns a notebook's completed sources into a two-speaker podcast script,
hands the script to an :class:`IAudioRenderer` and records the resulting
asset URL with an expiry.  Generation runs on the background worker:
``request_generation`` flips the status to ``generating`` and the caller
submits ``generate``, whose terminal state is ``completed`` or ``failed``.

An expired URL is never served; ``refresh`` extends the expiry window.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog

from notebook_rag.models.notebook import AudioOverview, AudioStatus, Notebook, SourceStatus
from notebook_rag.models.provider import LLMMessage
from notebook_rag.utils.errors import AudioOverviewExpiredError, NotFoundError

if TYPE_CHECKING:
    from notebook_rag.interfaces.audio_renderer import IAudioRenderer
    from notebook_rag.interfaces.notebook_store import INotebookStore
    from notebook_rag.services.llm_service import LLMService

logger = structlog.get_logger(logger_name=__name__)

_PODCAST_SYSTEM_PROMPT = """\
You are an expert podcast script writer. Write a script for a conversational \
podcast between two hosts (Speaker 1 and Speaker 2) who discuss the topic \
provided. The script must:

1. Open with an engaging introduction
2. Alternate between the two speakers
3. Use a conversational, accessible tone
4. Include rhetorical questions and natural transitions
5. End with a conclusion that summarizes the key points

Required format, exactly:
Speaker 1: [text]
Speaker 2: [text]
...

The script should last 5-7 minutes (approximately 750-1000 words)."""


class AudioOverviewService:
    """Generates and manages a notebook's audio overview.

    Parameters
    ----------
    store:
        Notebook store holding the audio descriptor columns.
    llm_service:
        Writes the podcast script.
    renderer:
        Turns the script into a served asset URL.
    ttl_hours:
        Lifetime of a rendered URL, also used by :meth:`refresh`.
    source_excerpt_chars:
        Characters of extracted text used for a source with no summary.
    """

    def __init__(
        self,
        store: INotebookStore,
        llm_service: LLMService,
        renderer: IAudioRenderer,
        ttl_hours: int = 24,
        source_excerpt_chars: int = 1000,
    ) -> None:
        self._store = store
        self._llm_service = llm_service
        self._renderer = renderer
        self._ttl = timedelta(hours=ttl_hours)
        self._source_excerpt_chars = source_excerpt_chars

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def request_generation(self, notebook_id: str) -> None:
        """Mark the notebook's audio as ``generating``; submit :meth:`generate` next."""
        await self._require_notebook(notebook_id)
        await self._store.set_audio_status(notebook_id, AudioStatus.GENERATING)
        logger.info("audio_generation_requested", notebook_id=notebook_id)

    async def generate(self, notebook_id: str) -> AudioStatus:
        """Write the script, render it and store the asset.  Never raises."""
        logger.info("audio_generation_started", notebook_id=notebook_id)
        try:
            content = await self._collect_source_content(notebook_id)
            if not content:
                await self._store.set_audio_status(notebook_id, AudioStatus.FAILED)
                logger.warning("audio_generation_no_sources", notebook_id=notebook_id)
                return AudioStatus.FAILED

            completion = await self._llm_service.chat(
                [
                    LLMMessage(role="system", content=_PODCAST_SYSTEM_PROMPT),
                    LLMMessage(role="user", content=content),
                ],
            )
            script = completion.text
            url = await self._renderer.render(script)
            expires_at = datetime.now(tz=timezone.utc) + self._ttl  # noqa: UP017
            await self._store.save_audio(notebook_id, url=url, script=script, expires_at=expires_at)
        except Exception as exc:
            logger.error(
                "audio_generation_failed",
                notebook_id=notebook_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            await self._store.set_audio_status(notebook_id, AudioStatus.FAILED)
            return AudioStatus.FAILED

        logger.info(
            "audio_generation_complete",
            notebook_id=notebook_id,
            url=url,
            script_words=len(script.split()),
            provider=completion.provider,
        )
        return AudioStatus.COMPLETED

    # ------------------------------------------------------------------
    # Descriptor management
    # ------------------------------------------------------------------

    async def get_overview(self, notebook_id: str) -> AudioOverview:
        """Return the audio descriptor.

        Raises
        ------
        NotFoundError
            If the notebook does not exist.
        AudioOverviewExpiredError
            If the URL's expiry lies in the past.
        """
        notebook = await self._require_notebook(notebook_id)
        audio = notebook.audio
        if audio.is_expired():
            raise AudioOverviewExpiredError(
                message=f"Audio overview for notebook {notebook_id} has expired",
                status=audio.status.value if audio.status else None,
            )
        return audio

    async def refresh(self, notebook_id: str) -> AudioOverview:
        """Extend the URL's expiry by the TTL from now.

        Raises
        ------
        NotFoundError
            If the notebook does not exist or has no audio.
        """
        notebook = await self._require_notebook(notebook_id)
        if not notebook.audio.url:
            raise NotFoundError(message=f"No audio available for notebook {notebook_id}")
        expires_at = datetime.now(tz=timezone.utc) + self._ttl  # noqa: UP017
        await self._store.update_audio_expiry(notebook_id, expires_at)
        logger.info("audio_expiry_refreshed", notebook_id=notebook_id, expires_at=expires_at)
        return notebook.audio.model_copy(update={"expires_at": expires_at})

    async def delete(self, notebook_id: str) -> None:
        """Remove the rendered asset and clear the descriptor."""
        notebook = await self._require_notebook(notebook_id)
        await self.remove_asset(notebook)
        await self._store.clear_audio(notebook_id)
        logger.info("audio_deleted", notebook_id=notebook_id)

    async def remove_asset(self, notebook: Notebook) -> None:
        """Delete the notebook's rendered asset, if any; failures are logged."""
        if not notebook.audio.url:
            return
        try:
            await self._renderer.delete(notebook.audio.url)
        except OSError as exc:
            logger.warning(
                "audio_asset_delete_failed",
                notebook_id=notebook.id,
                url=notebook.audio.url,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_notebook(self, notebook_id: str) -> Notebook:
        notebook = await self._store.get_notebook(notebook_id)
        if notebook is None:
            raise NotFoundError(message=f"Notebook not found: {notebook_id}")
        return notebook

    async def _collect_source_content(self, notebook_id: str) -> str:
        sources = await self._store.list_sources(notebook_id, status=SourceStatus.COMPLETED)
        parts = [
            s.summary or (s.extracted_text or "")[: self._source_excerpt_chars] for s in sources
        ]
        return "\n\n".join(p for p in parts if p)
