"""In-process background job runner.

Request handlers never wait on ingestion, notebook generation or audio
generation.  They persist a status field, then hand the work to
:class:`BackgroundTaskRunner`, which runs it as an ``asyncio.Task`` and
returns immediately.  Clients poll the persisted status fields.

Guarantees:

- At most ``max_concurrency`` jobs execute at once (a shared semaphore).
- Jobs are keyed (e.g. ``"ingest:<source_id>"``); submitting a key that is
  still running returns the running task instead of starting a second one.
- A job's exception never escapes the runner.  It is logged with its type
  and message and kept as the key's ``last_error``.  Only failures are
  remembered, at most ``max_failed_records`` of them (oldest dropped first);
  a successful job forgets its key.
- Running jobs are not cancelled; :meth:`drain` waits for all of them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class _JobRecord:
    """Internal bookkeeping for one job key (not serialized)."""

    key: str
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))  # noqa: UP017
    finished_at: datetime | None = None
    error: str | None = None


class BackgroundTaskRunner:
    """Runs keyed coroutines as bounded, tracked asyncio tasks."""

    def __init__(self, max_concurrency: int = 4, max_failed_records: int = 256) -> None:
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._max_failed_records = max(1, max_failed_records)
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._records: dict[str, _JobRecord] = {}

    def submit(self, key: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Schedule *coro* under *key* and return its task.

        If a job with the same key is still running, *coro* is closed
        without running and the existing task is returned.
        """
        running = self._tasks.get(key)
        if running is not None and not running.done():
            coro.close()
            logger.info("job_already_running", key=key)
            return running

        record = _JobRecord(key=key)
        self._records.pop(key, None)
        self._records[key] = record
        task = asyncio.create_task(self._run(key, coro), name=key)
        self._tasks[key] = task
        task.add_done_callback(lambda t, r=record: self._on_done(r, t))
        logger.info("job_submitted", key=key)
        return task

    async def _run(self, key: str, coro: Coroutine[Any, Any, Any]) -> Any:
        async with self._semaphore:
            logger.info("job_started", key=key)
            return await coro

    def _on_done(self, record: _JobRecord, task: asyncio.Task[Any]) -> None:
        key = record.key
        record.finished_at = datetime.now(tz=timezone.utc)  # noqa: UP017

        if task.cancelled():
            record.error = "cancelled"
            logger.warning("job_cancelled", key=key)
        else:
            exc = task.exception()
            if exc is not None:
                record.error = f"{type(exc).__name__}: {exc}"
                logger.error(
                    "job_failed",
                    key=key,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
            else:
                logger.info("job_finished", key=key)

        if self._records.get(key) is record:
            if record.error is None:
                del self._records[key]
            else:
                self._evict_failed()
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def _evict_failed(self) -> None:
        failed = [k for k, r in self._records.items() if r.error is not None]
        for key in failed[: max(0, len(failed) - self._max_failed_records)]:
            del self._records[key]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_running(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def pending_keys(self) -> list[str]:
        """Keys of jobs that are queued or executing."""
        return sorted(k for k, t in self._tasks.items() if not t.done())

    def last_error(self, key: str) -> str | None:
        """Return the error of the most recent job under *key*, if it failed."""
        record = self._records.get(key)
        return record.error if record else None

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-friendly view of running and recently failed jobs."""
        return {
            "running": self.pending_keys(),
            "failed": {
                key: record.error
                for key, record in sorted(self._records.items())
                if record.error is not None
            },
        }

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        while True:
            tasks = [t for t in self._tasks.values() if not t.done()]
            if not tasks:
                # Let pending done-callbacks record their outcome.
                await asyncio.sleep(0)
                return
            await asyncio.gather(*tasks, return_exceptions=True)
