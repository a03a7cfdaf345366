"""notebook_rag -- per-notebook document ingestion, cited RAG chat, and audio overviews."""

__version__ = "0.1.0"
