"""SQLite-backed notebook and provider-config store.

Persists notebooks, sources, the chat log and LLM provider configurations
to a local SQLite database (default ``data/notebooks.db``).  Uses
``aiosqlite`` for async I/O, one short-lived connection per operation.

Status transitions are single ``UPDATE`` statements so they are atomic
per row.  The ingestion claim is a compare-and-swap on ``status`` whose
``rowcount`` tells the caller whether it won.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from notebook_rag.interfaces.notebook_store import INotebookStore, IProviderConfigStore
from notebook_rag.models.chat import ChatMessage, MessageRole
from notebook_rag.models.notebook import (
    AudioOverview,
    AudioStatus,
    GenerationStatus,
    Notebook,
    Source,
    SourceStatus,
)
from notebook_rag.models.provider import ProviderConfig

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/notebooks.db")

_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS notebooks (
    id                 TEXT PRIMARY KEY,
    title              TEXT NOT NULL,
    description        TEXT,
    icon               TEXT,
    color              TEXT,
    example_questions  TEXT NOT NULL DEFAULT '[]',
    generation_status  TEXT NOT NULL DEFAULT 'pending',
    audio_status       TEXT,
    audio_url          TEXT,
    audio_expires_at   TEXT,
    audio_script       TEXT,
    created_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS sources (
    id              TEXT PRIMARY KEY,
    notebook_id     TEXT NOT NULL,
    kind            TEXT NOT NULL,
    title           TEXT NOT NULL,
    file_path       TEXT,
    url             TEXT,
    content         TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    extracted_text  TEXT,
    summary         TEXT,
    error           TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS chat_messages (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id  TEXT NOT NULL,
    role        TEXT NOT NULL,
    content     TEXT NOT NULL,
    provider    TEXT,
    model       TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS provider_configs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    provider      TEXT    NOT NULL,
    model         TEXT    NOT NULL,
    api_key       TEXT,
    base_url      TEXT,
    is_active     INTEGER NOT NULL DEFAULT 1,
    is_default    INTEGER NOT NULL DEFAULT 0,
    extra_config  TEXT    NOT NULL DEFAULT '{}',
    created_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_sources_notebook ON sources(notebook_id);",
    "CREATE INDEX IF NOT EXISTS idx_sources_status ON sources(notebook_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_messages_session ON chat_messages(session_id, id);",
    "CREATE INDEX IF NOT EXISTS idx_provider_active ON provider_configs(is_active, is_default);",
]

_CLAIM_SOURCE_SQL = f"""\
UPDATE sources
SET status = 'processing', error = NULL, updated_at = {_NOW_SQL}
WHERE id = ? AND status IN ('pending', 'failed');
"""

_SELECT_ACTIVE_CONFIG_SQL = """\
SELECT * FROM provider_configs
WHERE is_active = 1{provider_filter}
ORDER BY is_default DESC, id ASC
LIMIT 1;
"""

_NOTEBOOK_UPDATABLE = frozenset({"title", "description", "icon", "color"})
_PROVIDER_UPDATABLE = frozenset(
    {"provider", "model", "api_key", "base_url", "is_active", "is_default", "extra_config"}
)


class SQLiteNotebookStore(INotebookStore, IProviderConfigStore):
    """SQLite persistence for notebooks, sources, messages and provider configs."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("notebook_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetchone(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            return await cursor.fetchone()

    async def _fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            return list(await cursor.fetchall())

    async def _execute(self, sql: str, params: tuple = ()) -> int:
        """Run one write statement and return its rowcount."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            return cursor.rowcount

    @staticmethod
    def _row_to_notebook(row: aiosqlite.Row) -> Notebook:
        r = dict(row)
        audio_status = r.get("audio_status")
        return Notebook(
            id=r["id"],
            title=r["title"],
            description=r["description"],
            icon=r["icon"],
            color=r["color"],
            example_questions=json.loads(r["example_questions"] or "[]"),
            generation_status=GenerationStatus(r["generation_status"]),
            audio=AudioOverview(
                status=AudioStatus(audio_status) if audio_status else None,
                url=r["audio_url"],
                expires_at=r["audio_expires_at"],
                script=r["audio_script"],
            ),
            created_at=r["created_at"],
        )

    @staticmethod
    def _row_to_source(row: aiosqlite.Row) -> Source:
        r = dict(row)
        return Source(
            id=r["id"],
            notebook_id=r["notebook_id"],
            kind=r["kind"],
            title=r["title"],
            file_path=r["file_path"],
            url=r["url"],
            content=r["content"],
            status=SourceStatus(r["status"]),
            extracted_text=r["extracted_text"],
            summary=r["summary"],
            error=r["error"],
            created_at=r["created_at"],
        )

    @staticmethod
    def _row_to_message(row: aiosqlite.Row) -> ChatMessage:
        r = dict(row)
        return ChatMessage(
            id=r["id"],
            session_id=r["session_id"],
            role=MessageRole(r["role"]),
            content=r["content"],
            provider=r["provider"],
            model=r["model"],
            created_at=r["created_at"],
        )

    @staticmethod
    def _row_to_provider_config(row: aiosqlite.Row) -> ProviderConfig:
        r = dict(row)
        return ProviderConfig(
            id=r["id"],
            provider=r["provider"],
            model=r["model"],
            api_key=r["api_key"],
            base_url=r["base_url"],
            is_active=bool(r["is_active"]),
            is_default=bool(r["is_default"]),
            extra_config=json.loads(r["extra_config"] or "{}"),
        )

    # ------------------------------------------------------------------
    # Notebooks
    # ------------------------------------------------------------------

    async def create_notebook(
        self,
        title: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
    ) -> Notebook:
        notebook_id = str(uuid.uuid4())
        await self._execute(
            "INSERT INTO notebooks (id, title, description, icon, color) VALUES (?, ?, ?, ?, ?)",
            (notebook_id, title or "Untitled notebook", description, icon, color),
        )
        logger.info("notebook_created", notebook_id=notebook_id)
        row = await self._fetchone("SELECT * FROM notebooks WHERE id = ?", (notebook_id,))
        return self._row_to_notebook(row)

    async def get_notebook(self, notebook_id: str) -> Notebook | None:
        row = await self._fetchone("SELECT * FROM notebooks WHERE id = ?", (notebook_id,))
        return self._row_to_notebook(row) if row else None

    async def list_notebooks(self) -> list[Notebook]:
        rows = await self._fetchall("SELECT * FROM notebooks ORDER BY created_at DESC, rowid DESC")
        return [self._row_to_notebook(r) for r in rows]

    async def update_notebook(self, notebook_id: str, **fields: Any) -> Notebook | None:
        unknown = set(fields) - _NOTEBOOK_UPDATABLE
        if unknown:
            raise ValueError(f"cannot update notebook fields: {', '.join(sorted(unknown))}")
        if fields:
            assignments = ", ".join(f"{col} = ?" for col in fields)
            await self._execute(
                f"UPDATE notebooks SET {assignments}, updated_at = {_NOW_SQL} WHERE id = ?",
                (*fields.values(), notebook_id),
            )
        return await self.get_notebook(notebook_id)

    async def delete_notebook(self, notebook_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM chat_messages WHERE session_id = ?", (notebook_id,))
            await db.execute("DELETE FROM sources WHERE notebook_id = ?", (notebook_id,))
            cursor = await db.execute("DELETE FROM notebooks WHERE id = ?", (notebook_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info("notebook_deleted", notebook_id=notebook_id, existed=deleted)
        return deleted

    async def set_generation_status(self, notebook_id: str, status: GenerationStatus) -> None:
        await self._execute(
            f"UPDATE notebooks SET generation_status = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (status.value, notebook_id),
        )

    async def save_generated_content(
        self,
        notebook_id: str,
        title: str,
        description: str,
        icon: str,
        color: str,
        example_questions: list[str],
    ) -> None:
        await self._execute(
            "UPDATE notebooks SET title = ?, description = ?, icon = ?, color = ?, "
            f"example_questions = ?, generation_status = ?, updated_at = {_NOW_SQL} "
            "WHERE id = ?",
            (
                title,
                description,
                icon,
                color,
                json.dumps(example_questions),
                GenerationStatus.COMPLETED.value,
                notebook_id,
            ),
        )

    # ------------------------------------------------------------------
    # Audio overview
    # ------------------------------------------------------------------

    async def set_audio_status(self, notebook_id: str, status: AudioStatus) -> None:
        await self._execute(
            f"UPDATE notebooks SET audio_status = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (status.value, notebook_id),
        )

    async def save_audio(
        self,
        notebook_id: str,
        url: str,
        script: str,
        expires_at: datetime,
    ) -> None:
        await self._execute(
            "UPDATE notebooks SET audio_status = ?, audio_url = ?, audio_script = ?, "
            f"audio_expires_at = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (AudioStatus.COMPLETED.value, url, script, expires_at.isoformat(), notebook_id),
        )

    async def update_audio_expiry(self, notebook_id: str, expires_at: datetime) -> None:
        await self._execute(
            f"UPDATE notebooks SET audio_expires_at = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (expires_at.isoformat(), notebook_id),
        )

    async def clear_audio(self, notebook_id: str) -> None:
        await self._execute(
            "UPDATE notebooks SET audio_status = NULL, audio_url = NULL, "
            f"audio_expires_at = NULL, audio_script = NULL, updated_at = {_NOW_SQL} "
            "WHERE id = ?",
            (notebook_id,),
        )

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def create_source(self, source: Source) -> Source:
        await self._execute(
            "INSERT INTO sources (id, notebook_id, kind, title, file_path, url, content, status) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                source.id,
                source.notebook_id,
                source.kind.value,
                source.title,
                source.file_path,
                source.url,
                source.content,
                source.status.value,
            ),
        )
        logger.info(
            "source_created",
            source_id=source.id,
            notebook_id=source.notebook_id,
            kind=source.kind.value,
        )
        row = await self._fetchone("SELECT * FROM sources WHERE id = ?", (source.id,))
        return self._row_to_source(row)

    async def get_source(self, source_id: str) -> Source | None:
        row = await self._fetchone("SELECT * FROM sources WHERE id = ?", (source_id,))
        return self._row_to_source(row) if row else None

    async def list_sources(
        self,
        notebook_id: str,
        status: SourceStatus | None = None,
    ) -> list[Source]:
        if status is None:
            rows = await self._fetchall(
                "SELECT * FROM sources WHERE notebook_id = ? ORDER BY created_at, rowid",
                (notebook_id,),
            )
        else:
            rows = await self._fetchall(
                "SELECT * FROM sources WHERE notebook_id = ? AND status = ? "
                "ORDER BY created_at, rowid",
                (notebook_id, status.value),
            )
        return [self._row_to_source(r) for r in rows]

    async def claim_source_for_processing(self, source_id: str) -> bool:
        claimed = await self._execute(_CLAIM_SOURCE_SQL, (source_id,)) == 1
        logger.debug("source_claim", source_id=source_id, claimed=claimed)
        return claimed

    async def complete_source(self, source_id: str, extracted_text: str, summary: str) -> None:
        await self._execute(
            "UPDATE sources SET extracted_text = ?, summary = ?, status = ?, error = NULL, "
            f"updated_at = {_NOW_SQL} WHERE id = ?",
            (extracted_text, summary, SourceStatus.COMPLETED.value, source_id),
        )

    async def fail_source(self, source_id: str, error: str) -> None:
        await self._execute(
            f"UPDATE sources SET status = ?, error = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (SourceStatus.FAILED.value, error, source_id),
        )

    async def rename_source(self, source_id: str, title: str) -> Source | None:
        await self._execute(
            f"UPDATE sources SET title = ?, updated_at = {_NOW_SQL} WHERE id = ?",
            (title, source_id),
        )
        return await self.get_source(source_id)

    async def delete_source(self, source_id: str) -> bool:
        return await self._execute("DELETE FROM sources WHERE id = ?", (source_id,)) > 0

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def count_notebooks(self) -> int:
        row = await self._fetchone("SELECT COUNT(*) AS n FROM notebooks")
        return int(row["n"]) if row else 0

    async def count_sources_by_kind(self) -> dict[str, int]:
        rows = await self._fetchall(
            "SELECT kind, COUNT(*) AS n FROM sources GROUP BY kind ORDER BY kind"
        )
        return {r["kind"]: int(r["n"]) for r in rows}

    # ------------------------------------------------------------------
    # Chat log
    # ------------------------------------------------------------------

    async def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> ChatMessage:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "INSERT INTO chat_messages (session_id, role, content, provider, model) "
                "VALUES (?, ?, ?, ?, ?)",
                (session_id, role.value, content, provider, model),
            )
            message_id = cursor.lastrowid
            await db.commit()
            cursor = await db.execute("SELECT * FROM chat_messages WHERE id = ?", (message_id,))
            row = await cursor.fetchone()
        return self._row_to_message(row)

    async def get_recent_messages(
        self,
        session_id: str,
        limit: int,
        before_id: int | None = None,
    ) -> list[ChatMessage]:
        if limit <= 0:
            return []
        if before_id is None:
            rows = await self._fetchall(
                "SELECT * FROM chat_messages WHERE session_id = ? ORDER BY id DESC LIMIT ?",
                (session_id, limit),
            )
        else:
            rows = await self._fetchall(
                "SELECT * FROM chat_messages WHERE session_id = ? AND id < ? "
                "ORDER BY id DESC LIMIT ?",
                (session_id, before_id, limit),
            )
        return [self._row_to_message(r) for r in reversed(rows)]

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        rows = await self._fetchall(
            "SELECT * FROM chat_messages WHERE session_id = ? ORDER BY id",
            (session_id,),
        )
        return [self._row_to_message(r) for r in rows]

    async def clear_messages(self, session_id: str) -> int:
        return await self._execute("DELETE FROM chat_messages WHERE session_id = ?", (session_id,))

    # ------------------------------------------------------------------
    # Provider configs
    # ------------------------------------------------------------------

    async def list_provider_configs(self) -> list[ProviderConfig]:
        rows = await self._fetchall("SELECT * FROM provider_configs ORDER BY id")
        return [self._row_to_provider_config(r) for r in rows]

    async def get_provider_config(self, config_id: int) -> ProviderConfig | None:
        row = await self._fetchone("SELECT * FROM provider_configs WHERE id = ?", (config_id,))
        return self._row_to_provider_config(row) if row else None

    async def get_active_provider_config(
        self,
        provider: str | None = None,
    ) -> ProviderConfig | None:
        if provider is None:
            row = await self._fetchone(_SELECT_ACTIVE_CONFIG_SQL.format(provider_filter=""))
        else:
            row = await self._fetchone(
                _SELECT_ACTIVE_CONFIG_SQL.format(provider_filter=" AND provider = ?"),
                (provider,),
            )
        return self._row_to_provider_config(row) if row else None

    async def create_provider_config(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        is_active: bool = True,
        is_default: bool = False,
        extra_config: dict[str, Any] | None = None,
    ) -> ProviderConfig:
        async with aiosqlite.connect(str(self._db_path)) as db:
            if is_default:
                await db.execute("UPDATE provider_configs SET is_default = 0 WHERE is_default = 1")
            cursor = await db.execute(
                "INSERT INTO provider_configs "
                "(provider, model, api_key, base_url, is_active, is_default, extra_config) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    provider,
                    model,
                    api_key,
                    base_url,
                    int(is_active),
                    int(is_default),
                    json.dumps(extra_config or {}),
                ),
            )
            config_id = cursor.lastrowid
            await db.commit()
        logger.info(
            "provider_config_created",
            config_id=config_id,
            provider=provider,
            model=model,
            is_default=is_default,
        )
        row = await self._fetchone("SELECT * FROM provider_configs WHERE id = ?", (config_id,))
        return self._row_to_provider_config(row)

    async def update_provider_config(self, config_id: int, **fields: Any) -> ProviderConfig | None:
        unknown = set(fields) - _PROVIDER_UPDATABLE
        if unknown:
            raise ValueError(f"cannot update provider config fields: {', '.join(sorted(unknown))}")
        if await self.get_provider_config(config_id) is None:
            return None

        values: dict[str, Any] = {}
        for column, value in fields.items():
            if column in ("is_active", "is_default"):
                values[column] = int(bool(value))
            elif column == "extra_config":
                values[column] = json.dumps(value or {})
            else:
                values[column] = value

        if values:
            assignments = ", ".join(f"{col} = ?" for col in values)
            async with aiosqlite.connect(str(self._db_path)) as db:
                if values.get("is_default") == 1:
                    await db.execute(
                        "UPDATE provider_configs SET is_default = 0 WHERE id != ?",
                        (config_id,),
                    )
                await db.execute(
                    f"UPDATE provider_configs SET {assignments}, updated_at = {_NOW_SQL} "
                    "WHERE id = ?",
                    (*values.values(), config_id),
                )
                await db.commit()
            logger.info("provider_config_updated", config_id=config_id, fields=sorted(values))
        return await self.get_provider_config(config_id)

    async def delete_provider_config(self, config_id: int) -> bool:
        deleted = await self._execute("DELETE FROM provider_configs WHERE id = ?", (config_id,)) > 0
        logger.info("provider_config_deleted", config_id=config_id, existed=deleted)
        return deleted

    async def count_provider_configs(self) -> int:
        row = await self._fetchone("SELECT COUNT(*) AS n FROM provider_configs")
        return int(row["n"]) if row else 0

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
        return "sqlite_notebook_store"
