"""Source ingestion pipeline for notebook knowledge bases.

Orchestrates: **extract -> summarize -> chunk -> embed + store**.

1. **Extract** (text_extractor.py / source_processors/) -- PDFs, documents,
   web pages and placeholder transcripts become plain text.

2. **Chunk** (chunker.py / TextChunker) -- paragraph-aware splitting with
   character overlap for oversized paragraphs.

3. **Store** (via IVectorStoreProvider) -- the batch is embedded and
   written to ChromaDB tagged with its notebook and source.

The IngestionService class runs the stages for one source at a time and
owns the per-source single-flight claim.
"""

from notebook_rag.services.ingestion.chunker import TextChunker, split_text
from notebook_rag.services.ingestion.ingestion_service import IngestionService
from notebook_rag.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "IngestionService",
    "TextChunker",
    "TextExtractor",
    "split_text",
]
