"""
SQLite Storage Backend.

Durable single-file storage using the embedded sqlite3 engine. This is the
default backend: records and preferences survive process restarts without
any external service.
"""

from __future__ import annotations

import asyncio
import json
import os
import sqlite3
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from bottleledger.core.exceptions import StorageFailureError
from bottleledger.storage.base import (
    DocumentChange,
    StorageBackend,
    register_storage_backend,
    storage_errors,
)

DEFAULT_DB_PATH = "deliveries.db"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        collection TEXT NOT NULL,
        key TEXT NOT NULL,
        data TEXT NOT NULL,
        PRIMARY KEY (collection, key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sequences (
        name TEXT PRIMARY KEY,
        value INTEGER NOT NULL
    )
    """,
    # Range queries over delivery dates
    """
    CREATE INDEX IF NOT EXISTS documents_date
        ON documents (collection, json_extract(data, '$.date'))
    """,
)

# Decoding failures mean the file holds corrupt data
_ERRORS = (sqlite3.Error, json.JSONDecodeError)

T = TypeVar("T")


class SQLiteStorage(StorageBackend):
    """
    SQLite storage backend.

    Engine calls run in a worker thread so the event loop is never blocked.
    One connection is shared across threads and guarded by a re-entrant
    lock. Writes run in ``BEGIN IMMEDIATE`` transactions, so handles on the
    same file in other threads or processes cannot interleave with a
    read-modify-write.
    """

    name = "sqlite"

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        """
        Initialize SQLite storage.

        Args:
            path: Database file (or from BOTTLELEDGER_DB_PATH env). ":memory:"
                gives a private, non-durable database.
        """
        self._path = str(path or os.environ.get("BOTTLELEDGER_DB_PATH", DEFAULT_DB_PATH))
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def path(self) -> str:
        return self._path

    def _get_connection(self) -> sqlite3.Connection:
        """Lazily open the database and create the schema."""
        if self._conn is None:
            # Transactions are opened explicitly by _call
            conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
            try:
                for statement in _SCHEMA:
                    conn.execute(statement)
            except sqlite3.Error:
                conn.close()
                raise
            self._conn = conn
        return self._conn

    def _call(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        write: bool = False,
    ) -> T:
        with self._lock, storage_errors(self.name, operation, *_ERRORS):
            conn = self._get_connection()
            if not write:
                return func(conn, *args)
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                return func(conn, *args)

    async def _run(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        write: bool = False,
    ) -> T:
        return await asyncio.to_thread(self._call, operation, func, *args, write=write)

    @staticmethod
    def _read(conn: sqlite3.Connection, collection: str, key: str) -> dict[str, Any] | None:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND key = ?",
            (collection, key),
        ).fetchone()
        return json.loads(row[0]) if row else None

    @staticmethod
    def _write(conn: sqlite3.Connection, collection: str, key: str, data: dict[str, Any]) -> None:
        conn.execute(
            "INSERT INTO documents (collection, key, data) VALUES (?, ?, ?) "
            "ON CONFLICT(collection, key) DO UPDATE SET data = excluded.data",
            (collection, key, json.dumps(data)),
        )

    @staticmethod
    def _rows_to_documents(rows: list[tuple[str, str]]) -> list[dict[str, Any]]:
        results = []
        for key, raw in rows:
            data = json.loads(raw)
            data["_key"] = key
            results.append(data)
        return results

    @staticmethod
    def _replace_existing(
        conn: sqlite3.Connection, collection: str, key: str, change: DocumentChange
    ) -> dict[str, Any] | None:
        existing = SQLiteStorage._read(conn, collection, key)
        if existing is None:
            return None
        updated = change(existing)
        conn.execute(
            "UPDATE documents SET data = ? WHERE collection = ? AND key = ?",
            (json.dumps(updated), collection, key),
        )
        return updated

    @staticmethod
    def _increment(conn: sqlite3.Connection, name: str) -> int:
        conn.execute(
            "INSERT INTO sequences (name, value) VALUES (?, 1) "
            "ON CONFLICT(name) DO UPDATE SET value = value + 1",
            (name,),
        )
        row = conn.execute("SELECT value FROM sequences WHERE name = ?", (name,)).fetchone()
        return int(row[0])

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        await self._run("save", self._write, collection, key, data, write=True)

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        return await self._run("get", self._read, collection, key)

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        def delete_row(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            )
            return cursor.rowcount > 0

        return await self._run("delete", delete_row, write=True)

    async def query(self, collection: str) -> list[dict[str, Any]]:
        def select(conn: sqlite3.Connection) -> list[dict[str, Any]]:
            rows = conn.execute(
                "SELECT key, data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
            return self._rows_to_documents(rows)

        return await self._run("query", select)

    async def query_range(
        self,
        collection: str,
        field: str,
        low: int | float,
        high: int | float,
    ) -> list[dict[str, Any]]:
        if not field.isidentifier():
            raise ValueError(f"Invalid document field name: {field!r}")
        # The path is inlined so the expression matches the documents_date index
        sql = (
            "SELECT key, data FROM documents WHERE collection = ? "
            f"AND json_extract(data, '$.{field}') BETWEEN ? AND ? ORDER BY rowid"
        )

        def select(conn: sqlite3.Connection) -> list[dict[str, Any]]:
            rows = conn.execute(sql, (collection, low, high)).fetchall()
            return self._rows_to_documents(rows)

        return await self._run("query_range", select)

    async def update(
        self,
        collection: str,
        key: str,
        change: DocumentChange,
    ) -> dict[str, Any] | None:
        return await self._run(
            "update", self._replace_existing, collection, key, change, write=True
        )

    async def count(self, collection: str) -> int:
        def count_rows(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                "SELECT COUNT(*) FROM documents WHERE collection = ?",
                (collection,),
            ).fetchone()
            return int(row[0])

        return await self._run("count", count_rows)

    async def clear(self, collection: str) -> int:
        def delete_rows(conn: sqlite3.Connection) -> int:
            cursor = conn.execute("DELETE FROM documents WHERE collection = ?", (collection,))
            return cursor.rowcount

        return await self._run("clear", delete_rows, write=True)

    async def next_sequence(self, name: str) -> int:
        return await self._run("next_sequence", self._increment, name, write=True)

    async def health_check(self) -> bool:
        """Check that the database file can be opened and queried."""
        try:
            await self._run("health_check", lambda conn: conn.execute("SELECT 1").fetchone())
        except StorageFailureError:
            return False
        return True

    async def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


register_storage_backend("sqlite", SQLiteStorage)
