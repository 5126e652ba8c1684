"""SQLite corpus store.

Implements the core CorpusStore using one table of JSON documents per item
kind. Blocking sqlite3 calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from corpus_refresh.core import ContentItem, CorpusStore, StoreUnavailableError


class SQLiteCorpusStore(CorpusStore):
    """Thin SQLite wrapper that satisfies the CorpusStore contract."""

    def __init__(self, db_path: str, item_type: type[ContentItem], timeout: float = 30.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self.item_type = item_type
        self.table = f"{item_type.kind.value}s"
        self._ready = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        # Schema is created on first use so an unreachable file only fails the
        # operations that touch it.
        if not self._ready:
            self._create_schema()
        return fn(*args)

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(self._call, fn, *args)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite operation on {self.table} failed: {e}") from e

    def init_db(self) -> None:
        """Create the table and indexes if they do not exist.

        Columns:
        - seq: insertion sequence, drives newest-first listing
        - id: opaque item id handed out to clients
        - created_at: insertion timestamp
        - primary_value: title or setup, indexed for lookups
        - search_text: casefolded search fields for substring search
        - document: the item as JSON
        """
        try:
            self._create_schema()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Could not initialise {self._db_path}: {e}") from e

    def _create_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    primary_value TEXT NOT NULL,
                    search_text TEXT NOT NULL,
                    document TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_primary "
                f"ON {self.table} (primary_value)"
            )
        self._ready = True

    def _row(self, item: ContentItem) -> tuple:
        return (
            uuid.uuid4().hex,
            datetime.now(timezone.utc).isoformat(),
            item.primary_value,
            item.search_text(),
            json.dumps(item.to_document(), ensure_ascii=False),
        )

    def _load(self, row: sqlite3.Row) -> ContentItem:
        return self.item_type.from_document(
            json.loads(row["document"]),
            row["id"],
            datetime.fromisoformat(row["created_at"]),
        )

    def _insert_rows(self, conn: sqlite3.Connection, rows: list[tuple]) -> None:
        conn.executemany(
            f"""
            INSERT INTO {self.table} (id, created_at, primary_value, search_text, document)
            VALUES (?, ?, ?, ?, ?)
            """,
            rows,
        )

    def _count(self) -> int:
        with self._connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {self.table}").fetchone()
        return int(row["n"])

    def _delete_all(self) -> int:
        with self._connect() as conn:
            cur = conn.execute(f"DELETE FROM {self.table}")
            return cur.rowcount

    def _insert_many(self, items: list[ContentItem]) -> list[str]:
        rows = [self._row(item) for item in items]
        with self._connect() as conn:
            self._insert_rows(conn, rows)
        return [row[0] for row in rows]

    def _replace_all(self, items: list[ContentItem]) -> int:
        rows = [self._row(item) for item in items]
        # Delete and insert share one transaction; readers never see the gap.
        with self._connect() as conn:
            cur = conn.execute(f"DELETE FROM {self.table}")
            deleted = cur.rowcount
            self._insert_rows(conn, rows)
        return deleted

    def _find(self, skip: int, limit: int, term: Optional[str]) -> list[ContentItem]:
        with self._connect() as conn:
            if term:
                rows = conn.execute(
                    f"""
                    SELECT id, created_at, document FROM {self.table}
                    WHERE instr(search_text, ?) > 0
                    ORDER BY seq DESC LIMIT ? OFFSET ?
                    """,
                    (term.casefold(), limit, skip),
                ).fetchall()
            else:
                rows = conn.execute(
                    f"""
                    SELECT id, created_at, document FROM {self.table}
                    ORDER BY seq DESC LIMIT ? OFFSET ?
                    """,
                    (limit, skip),
                ).fetchall()
        return [self._load(row) for row in rows]

    def _get_by_id(self, item_id: str) -> Optional[ContentItem]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT id, created_at, document FROM {self.table} WHERE id = ?",
                (item_id,),
            ).fetchone()
        return self._load(row) if row else None

    async def count(self) -> int:
        return await self._run(self._count)

    async def delete_all(self) -> int:
        return await self._run(self._delete_all)

    async def insert_one(self, item: ContentItem) -> ContentItem:
        inserted = await self.insert_many([item])
        return inserted[0]

    async def insert_many(self, items: list[ContentItem]) -> list[ContentItem]:
        ids = await self._run(self._insert_many, items)
        return [await self.get_by_id(item_id) for item_id in ids]

    async def replace_all(self, items: list[ContentItem]) -> int:
        return await self._run(self._replace_all, items)

    async def find(
        self, skip: int, limit: int, term: Optional[str] = None
    ) -> list[ContentItem]:
        return await self._run(self._find, skip, limit, term)

    async def get_by_id(self, item_id: str) -> Optional[ContentItem]:
        return await self._run(self._get_by_id, item_id)
