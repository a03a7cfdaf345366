"""Background job execution.

- **task_runner** -- BackgroundTaskRunner: keyed, bounded asyncio tasks for
  ingestion, notebook generation and audio-overview generation.
"""

from notebook_rag.pipeline.task_runner import BackgroundTaskRunner

__all__ = ["BackgroundTaskRunner"]
