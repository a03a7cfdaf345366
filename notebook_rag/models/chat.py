"""Chat log and citation models.

The chat log is append-only: :class:`ChatMessage` rows are never edited
or reordered.  An AI message stores a serialized :class:`CitedAnswer`
(segments + citations) as its ``content``; citations are derived data and
have no table of their own.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MessageRole(str, Enum):  # noqa: UP042
    """Author of a chat log entry."""

    HUMAN = "human"
    AI = "ai"


class ChatMessage(BaseModel):
    """One persisted chat log entry.  ``session_id`` is the notebook id."""

    model_config = ConfigDict(frozen=True)

    id: int
    session_id: str
    role: MessageRole
    content: str
    provider: str | None = None
    model: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))  # noqa: UP017

    def plain_text(self) -> str:
        """Return the readable text of the message.

        AI messages store JSON; their segments are re-joined with blank
        lines so history sent back to the LLM reads like the original answer.
        """
        if self.role is MessageRole.HUMAN:
            return self.content
        try:
            answer = CitedAnswer.model_validate_json(self.content)
        except (ValidationError, json.JSONDecodeError):
            return self.content
        return "\n\n".join(segment.text for segment in answer.segments)


class Citation(BaseModel):
    """Pointer from an answer segment back to the chunk that backs it."""

    model_config = ConfigDict(frozen=True)

    citation_id: int = Field(ge=1, description="1-based id referenced by a segment.")
    source_id: str
    source_title: str = "Unknown source"
    source_kind: str = "text"
    chunk_index: int | None = None
    chunk_lines_from: int = 1
    chunk_lines_to: int = 1
    excerpt: str = Field(default="", description="At most 200 characters of the chunk text.")


class AnswerSegment(BaseModel):
    """One paragraph of an AI answer, optionally linked to a citation."""

    model_config = ConfigDict(frozen=True)

    text: str
    citation_id: int | None = None


class CitedAnswer(BaseModel):
    """Segmented AI answer with its citations; stored as the message content."""

    model_config = ConfigDict(frozen=True)

    segments: list[AnswerSegment] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)


class ChatTurnResult(BaseModel):
    """The persisted message pair produced by one chat turn."""

    model_config = ConfigDict(frozen=True)

    user_message: ChatMessage
    ai_message: ChatMessage
    answer: CitedAnswer
