"""SQLite-backed key-value store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from kvsite.errors import StoreReadError, StoreWriteError
from kvsite.store.base import DEFAULT_BLOCK_SIZE


class SQLiteKVStore:
    """Persistence layer standing in for the remote key-value service."""

    def __init__(self, db_path: Path, *, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        self.db_path = Path(db_path)
        self.block_size = block_size
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    size INTEGER NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def put(self, key: str, value: bytes) -> None:
        """Insert or overwrite ``key``."""
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, size) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        size = excluded.size,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, sqlite3.Binary(bytes(value)), len(value)),
                )
        except sqlite3.Error as exc:
            raise StoreWriteError(key, str(exc)) from exc

    def get(self, key: str) -> bytes:
        try:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreReadError(key, str(exc)) from exc
        if row is None:
            raise StoreReadError(key, "no such key")
        return bytes(row["value"])

    def stream(self, key: str) -> Iterator[bytes]:
        """Yield the value of ``key`` in blocks without loading it whole."""
        size = self.size(key)
        for start in range(0, size, self.block_size):
            try:
                row = self._conn.execute(
                    "SELECT substr(value, ?, ?) AS block FROM kv WHERE key = ?",
                    (start + 1, self.block_size, key),
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreReadError(key, str(exc)) from exc
            if row is None:
                raise StoreReadError(key, "key disappeared while streaming")
            yield bytes(row["block"])

    def size(self, key: str) -> int:
        try:
            row = self._conn.execute("SELECT size FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreReadError(key, str(exc)) from exc
        if row is None:
            raise StoreReadError(key, "no such key")
        return int(row["size"])

    def keys(self) -> List[str]:
        rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def delete(self, key: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def __contains__(self, key: object) -> bool:
        row = self._conn.execute("SELECT 1 FROM kv WHERE key = ?", (key,)).fetchone()
        return row is not None
