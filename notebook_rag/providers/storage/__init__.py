"""Relational storage adapters."""

from notebook_rag.providers.storage.sqlite_store import SQLiteNotebookStore

__all__ = ["SQLiteNotebookStore"]
