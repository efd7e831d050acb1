"""SQLite-backed note repository.

Persists users and notes to a local SQLite database at
``data/smartlens.db``.  Uses ``aiosqlite`` for async I/O and opens one
connection per operation.

The analysis result is stored as a JSON text column in the camelCase shape
the analysis LLM produces.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from smartlens.interfaces.note_repository import INoteRepository
from smartlens.models.analysis import AnalysisResult
from smartlens.models.document import ExtractionSource
from smartlens.models.note import Note, NoteDraft
from smartlens.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/smartlens.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT    NOT NULL,
    email       TEXT    NOT NULL UNIQUE,
    created_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS notes (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id             INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title               TEXT    NOT NULL,
    original_image_url  TEXT    NOT NULL,
    extracted_text      TEXT    NOT NULL,
    extraction_source   TEXT    NOT NULL,
    analysis_result     TEXT,
    created_at          TEXT    NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_notes_user_created ON notes(user_id, created_at);",
]

_NOTE_COLUMNS = (
    "id, user_id, title, original_image_url, extracted_text, "
    "extraction_source, analysis_result, created_at"
)

_INSERT_NOTE_SQL = """\
INSERT INTO notes (user_id, title, original_image_url, extracted_text,
                   extraction_source, analysis_result, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""


class SQLiteNoteRepository(INoteRepository):
    """SQLite-backed note and user persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                for table_sql in _CREATE_TABLES_SQL:
                    await db.execute(table_sql)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise self._wrap_error(exc, "initialize") from exc
        logger.info("note_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Seeding (account management lives outside this service)
    # ------------------------------------------------------------------

    async def create_user(self, name: str, email: str) -> int:
        """Insert a user row and return its id."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "INSERT INTO users (name, email) VALUES (?, ?)",
                    (name, email),
                )
                await db.commit()
                user_id = cursor.lastrowid
        except (aiosqlite.Error, OverflowError) as exc:
            raise self._wrap_error(exc, "create_user") from exc
        logger.info("user_created", user_id=user_id)
        return int(user_id)

    # ------------------------------------------------------------------
    # INoteRepository implementation
    # ------------------------------------------------------------------

    async def user_exists(self, user_id: int) -> bool:
        rows = await self._fetch("SELECT 1 FROM users WHERE id = ? LIMIT 1", (user_id,), "user_exists")
        return bool(rows)

    async def find_by_text(self, user_id: int, extracted_text: str) -> list[Note]:
        rows = await self._fetch(
            f"SELECT {_NOTE_COLUMNS} FROM notes "
            "WHERE user_id = ? AND extracted_text = ? "
            "ORDER BY created_at DESC, id DESC",
            (user_id, extracted_text),
            "find_by_text",
        )
        return [self._row_to_note(r) for r in rows]

    async def insert(self, draft: NoteDraft) -> Note:
        created_at = datetime.now(tz=timezone.utc)  # noqa: UP017
        analysis_json = (
            json.dumps(draft.analysis_result.model_dump(mode="json", by_alias=True))
            if draft.analysis_result is not None
            else None
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    _INSERT_NOTE_SQL,
                    (
                        draft.user_id,
                        draft.title,
                        draft.original_image_url,
                        draft.extracted_text,
                        draft.extraction_source.value,
                        analysis_json,
                        created_at.isoformat(timespec="milliseconds"),
                    ),
                )
                await db.commit()
                note_id = cursor.lastrowid
        except (aiosqlite.Error, OverflowError) as exc:
            raise self._wrap_error(exc, "insert") from exc

        logger.info("note_inserted", note_id=note_id, user_id=draft.user_id)
        return Note(id=int(note_id), created_at=created_at, **draft.model_dump())

    async def get(self, note_id: int) -> Note | None:
        rows = await self._fetch(
            f"SELECT {_NOTE_COLUMNS} FROM notes WHERE id = ?",
            (note_id,),
            "get",
        )
        return self._row_to_note(rows[0]) if rows else None

    async def list_for_user(self, user_id: int) -> list[Note]:
        rows = await self._fetch(
            f"SELECT {_NOTE_COLUMNS} FROM notes WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC",
            (user_id,),
            "list_for_user",
        )
        return [self._row_to_note(r) for r in rows]

    async def delete(self, note_id: int) -> bool:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("DELETE FROM notes WHERE id = ?", (note_id,))
                await db.commit()
                deleted = cursor.rowcount > 0
        except (aiosqlite.Error, OverflowError) as exc:
            raise self._wrap_error(exc, "delete") from exc
        logger.info("note_deleted", note_id=note_id, deleted=deleted)
        return deleted

    def get_provider_name(self) -> str:
        return "sqlite"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch(self, sql: str, params: tuple[Any, ...], operation: str) -> list[dict[str, Any]]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except (aiosqlite.Error, OverflowError) as exc:
            raise self._wrap_error(exc, operation) from exc
        return [dict(r) for r in rows]

    def _wrap_error(self, exc: Exception, operation: str) -> PersistenceError:
        logger.error("note_db_error", operation=operation, error=str(exc))
        return PersistenceError(
            f"Note store {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )

    @staticmethod
    def _row_to_note(row: dict[str, Any]) -> Note:
        analysis = None
        if row["analysis_result"]:
            analysis = AnalysisResult.model_validate(json.loads(row["analysis_result"]))
        return Note(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            original_image_url=row["original_image_url"],
            extracted_text=row["extracted_text"],
            extraction_source=ExtractionSource(row["extraction_source"]),
            analysis_result=analysis,
            created_at=datetime.fromisoformat(row["created_at"]),
        )
