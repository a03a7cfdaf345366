"""Placeholder audio renderer.

Speech synthesis is outside this service.  The placeholder stores the
script next to an empty ``.mp3`` file in the audio directory and returns
the URL the asset would be served from, so the audio-overview workflow
(status, expiry, refresh, delete) runs end to end without a TTS backend.
"""

from __future__ import annotations

import uuid
from pathlib import Path

import structlog

from notebook_rag.interfaces.audio_renderer import IAudioRenderer
from notebook_rag.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

_URL_PREFIX = "/audio/"


class PlaceholderAudioRenderer(IAudioRenderer):
    """Writes ``<uuid>.mp3`` (empty) and ``<uuid>.txt`` (the script)."""

    def __init__(self, audio_dir: str | Path = "data/audio") -> None:
        self._audio_dir = Path(audio_dir)

    async def render(self, script: str) -> str:
        asset_id = str(uuid.uuid4())
        try:
            self._audio_dir.mkdir(parents=True, exist_ok=True)
            (self._audio_dir / f"{asset_id}.mp3").write_bytes(b"")
            (self._audio_dir / f"{asset_id}.txt").write_text(script, encoding="utf-8")
        except OSError as exc:
            raise ProviderError(
                message=f"Could not write audio placeholder: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        url = f"{_URL_PREFIX}{asset_id}.mp3"
        logger.info("audio_placeholder_rendered", url=url, script_chars=len(script))
        return url

    async def delete(self, asset_url: str) -> None:
        if not asset_url.startswith(_URL_PREFIX):
            return
        stem = Path(asset_url[len(_URL_PREFIX) :]).stem
        for suffix in (".mp3", ".txt"):
            (self._audio_dir / f"{stem}{suffix}").unlink(missing_ok=True)
        logger.info("audio_placeholder_deleted", url=asset_url)

    def resolve(self, asset_url: str) -> Path | None:
        """Return the local file behind *asset_url*, or ``None``."""
        if not asset_url.startswith(_URL_PREFIX):
            return None
        path = self._audio_dir / Path(asset_url[len(_URL_PREFIX) :]).name
        return path if path.exists() else None

    def get_provider_name(self) -> str:
        return "placeholder_audio"
