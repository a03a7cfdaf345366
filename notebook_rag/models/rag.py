"""RAG pipeline data models for the notebook knowledge base.

Defines Pydantic v2 models for document chunks, retrieval results and
ingestion outcomes.  All models use frozen config.

Flow overview:

    1. INGESTION: a source's extracted text is split into chunks.
    2. EMBEDDING: each chunk is converted into a vector.
    3. STORAGE: chunks + vectors + metadata go to ChromaDB, tagged with
       the owning notebook so every query can be scoped to one notebook.
    4. RETRIEVAL: a chat turn embeds the question and fetches the nearest
       chunks of that notebook only.
    5. GENERATION: retrieved chunks become the LLM context, and the answer
       is annotated with citations back to them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from notebook_rag.models.notebook import SourceStatus


# ---------------------------------------------------------------------------
# DocumentChunk -- the fundamental unit of the knowledge base.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A chunk of a source's text, ready for embedding and storage.

    ``chunk_index`` is dense and 0-based per source, in original-text order.
    Chunks are immutable once stored; they are only ever deleted by source
    or by notebook.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Unique identifier (UUID) for this chunk.")
    text: str = Field(description="The chunk's textual content.")
    notebook_id: str = Field(description="Notebook the chunk is scoped to.")
    source_id: str = Field(description="Identifier of the parent source.")
    source_title: str = Field(default="Unknown source", description="Title of the parent source.")
    source_kind: str = Field(default="text", description="Kind of the parent source.")
    chunk_index: int = Field(ge=0, description="Position of the chunk within its source.")
    notebook_title: str | None = Field(default=None, description="Notebook title at ingestion time.")


# ---------------------------------------------------------------------------
# RetrievedChunk -- a search result from the vector store.
# ---------------------------------------------------------------------------
class RetrievedChunk(BaseModel):
    """A document chunk returned from a vector-store query with its score."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk = Field(description="The retrieved document chunk.")
    similarity: float = Field(
        default=0.0,
        description=(
            "Cosine similarity (1 - cosine distance) between query and chunk; "
            "negative when the vectors point away from each other."
        ),
    )


# ---------------------------------------------------------------------------
# IngestionResult -- outcome of one ingestion attempt.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of a single source ingestion attempt."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    status: SourceStatus
    chunks_created: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")
    error: str | None = None
