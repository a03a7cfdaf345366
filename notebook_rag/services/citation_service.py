"""Citation assembly for chat answers.

Splits an LLM answer into paragraph segments and links each segment to
one of the retrieved chunks.  Assignment is positional round-robin:
segment ``i`` cites ``chunks[i % len(chunks)]``, so several segments can
cite the same chunk when segments outnumber chunks.  The assignment does
not weigh similarity.
"""

from __future__ import annotations

import re

import structlog

from notebook_rag.models.chat import AnswerSegment, Citation, CitedAnswer
from notebook_rag.models.rag import RetrievedChunk

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")

EXCERPT_MAX_CHARS = 200
_ELLIPSIS = "..."


def make_excerpt(text: str, max_chars: int = EXCERPT_MAX_CHARS) -> str:
    """Return *text* cut to at most *max_chars* characters, ellipsis included."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(_ELLIPSIS)] + _ELLIPSIS


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines and drop whitespace-only paragraphs."""
    return [p for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]


class CitationService:
    """Builds :class:`CitedAnswer` objects from answer text and retrieval results."""

    def build(self, answer_text: str, retrieved: list[RetrievedChunk]) -> CitedAnswer:
        """Segment *answer_text* and attach round-robin citations.

        With no retrieved chunks every segment is returned without a
        citation.
        """
        paragraphs = split_paragraphs(answer_text)
        segments: list[AnswerSegment] = []
        citations: list[Citation] = []

        for index, paragraph in enumerate(paragraphs):
            if not retrieved:
                segments.append(AnswerSegment(text=paragraph))
                continue

            chunk = retrieved[index % len(retrieved)].chunk
            citation_id = index + 1
            segments.append(AnswerSegment(text=paragraph, citation_id=citation_id))
            citations.append(
                Citation(
                    citation_id=citation_id,
                    source_id=chunk.source_id,
                    source_title=chunk.source_title or "Unknown source",
                    source_kind=chunk.source_kind or "text",
                    chunk_index=chunk.chunk_index,
                    chunk_lines_from=1,
                    chunk_lines_to=len(paragraph.split("\n")),
                    excerpt=make_excerpt(chunk.text),
                )
            )

        logger.debug(
            "citations_built",
            segments=len(segments),
            citations=len(citations),
            retrieved=len(retrieved),
        )
        return CitedAnswer(segments=segments, citations=citations)
