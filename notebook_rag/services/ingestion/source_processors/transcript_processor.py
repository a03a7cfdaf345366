"""Placeholder transcripts for YouTube videos and audio files.

Transcription is not wired up yet.  Rather than dropping these sources,
the processor returns a clearly labelled stand-in text naming the video
URL or audio file, so the source still completes and can be cited.
"""

from __future__ import annotations

from pathlib import Path

PLACEHOLDER_NOTICE = (
    "This is a placeholder transcript. Transcription is not available yet, "
    "so the actual content of this recording has not been extracted."
)


class TranscriptPlaceholderProcessor:
    """Builds labelled placeholder transcripts."""

    def youtube(self, url: str) -> str:
        return f"[Placeholder] YouTube video transcript: {url}\n\n{PLACEHOLDER_NOTICE}"

    def audio(self, file_path: str) -> str:
        name = Path(file_path).name
        return f"[Placeholder] Audio transcript: {name}\n\n{PLACEHOLDER_NOTICE}"
