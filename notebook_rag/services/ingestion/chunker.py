"""Text chunking with paragraph boundaries and overlapping windows.

Splits extracted source text into retrieval-sized pieces:

1. **Short text** -- anything up to ``max_chunk_size`` characters is one
   chunk, even the empty string.

2. **Paragraph-preserving** -- longer text is split on blank lines and
   paragraphs are packed into a buffer, which is flushed whenever the next
   paragraph would not fit.  Chunk boundaries therefore fall between
   paragraphs.

3. **Sliding window** -- a single paragraph longer than ``max_chunk_size``
   is cut into fixed windows advancing by ``max_chunk_size - overlap``, so
   neighbouring windows share ``overlap`` characters.

Sizes are in characters.  :func:`split_text` is pure; :class:`TextChunker`
adds configuration checks and wraps the pieces in
:class:`~notebook_rag.models.rag.DocumentChunk` objects.
"""

from __future__ import annotations

import re
import uuid

import structlog

from notebook_rag.models.notebook import Source
from notebook_rag.models.rag import DocumentChunk
from notebook_rag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_PARAGRAPH_JOINER = "\n\n"


def _validate(max_chunk_size: int, overlap: int) -> None:
    if max_chunk_size <= 0:
        raise ConfigurationError(f"chunk size must be positive, got {max_chunk_size}")
    if overlap < 0 or overlap >= max_chunk_size:
        raise ConfigurationError(
            f"chunk overlap must satisfy 0 <= overlap < chunk size "
            f"(overlap={overlap}, chunk size={max_chunk_size})"
        )


def _window(paragraph: str, max_chunk_size: int, overlap: int) -> list[str]:
    """Slice an oversized paragraph into overlapping fixed-size windows."""
    step = max_chunk_size - overlap
    windows: list[str] = []
    start = 0
    while start < len(paragraph):
        end = start + max_chunk_size
        windows.append(paragraph[start:end])
        if end >= len(paragraph):
            break
        start += step
    return windows


def split_text(text: str, max_chunk_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split *text* into ordered chunk texts.

    Parameters
    ----------
    text:
        The text to split.
    max_chunk_size:
        Upper bound on chunk length in characters.
    overlap:
        Characters shared by consecutive windows of an oversized paragraph.

    Returns
    -------
    list[str]
        Chunks in source order.  Deterministic for equal inputs.

    Raises
    ------
    ConfigurationError
        If ``max_chunk_size <= 0`` or ``overlap`` is not in
        ``[0, max_chunk_size)``.
    """
    _validate(max_chunk_size, overlap)

    if len(text) <= max_chunk_size:
        return [text]

    chunks: list[str] = []
    buffer = ""
    for paragraph in _PARAGRAPH_SPLIT.split(text):
        if len(paragraph) > max_chunk_size:
            if buffer:
                chunks.append(buffer)
                buffer = ""
            chunks.extend(_window(paragraph, max_chunk_size, overlap))
            continue

        if not paragraph.strip():
            continue

        if not buffer:
            buffer = paragraph
        elif len(buffer) + len(_PARAGRAPH_JOINER) + len(paragraph) > max_chunk_size:
            chunks.append(buffer)
            buffer = paragraph
        else:
            buffer = f"{buffer}{_PARAGRAPH_JOINER}{paragraph}"

    if buffer:
        chunks.append(buffer)
    return chunks


class TextChunker:
    """Configured splitter producing :class:`DocumentChunk` objects.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Overlap between sliding windows (default 200).

    Raises
    ------
    ConfigurationError
        If the pair is invalid, so a bad setting fails at startup rather
        than on the first ingestion.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        _validate(chunk_size, overlap)
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def split(self, text: str) -> list[str]:
        """Return the chunk texts for *text* using this chunker's settings."""
        return split_text(text, self._chunk_size, self._overlap)

    def chunk(
        self,
        text: str,
        source: Source,
        notebook_title: str | None = None,
    ) -> list[DocumentChunk]:
        """Split *text* and tag every piece with *source*'s metadata.

        ``chunk_index`` runs 0, 1, 2, ... in emission order.
        """
        chunks = [
            DocumentChunk(
                chunk_id=str(uuid.uuid4()),
                text=piece,
                notebook_id=source.notebook_id,
                source_id=source.id,
                source_title=source.title,
                source_kind=source.kind.value,
                chunk_index=index,
                notebook_title=notebook_title,
            )
            for index, piece in enumerate(self.split(text))
        ]
        logger.debug(
            "chunking_complete",
            source_id=source.id,
            num_chunks=len(chunks),
            chunk_size=self._chunk_size,
        )
        return chunks
