"""Key/value string storage, the local equivalent of browser localStorage."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from .schema import ensure_schema


class LocalStorage:
    """Manages the local_storage table.

    Values are opaque strings; callers serialize their own data. Errors
    from SQLite propagate as ``sqlite3.Error``.
    """

    def __init__(
        self, db_path: str | Path = "~/.config/receipt-extractor/storage.db"
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get_item(self, key: str) -> str | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT value FROM local_storage WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO local_storage (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET
                 value = excluded.value,
                 updated_at = datetime('now', 'localtime')""",
            (key, value),
        )
        conn.commit()

    def remove_item(self, key: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
        conn.commit()

    def keys(self) -> list[str]:
        conn = self._get_conn()
        rows = conn.execute("SELECT key FROM local_storage ORDER BY key").fetchall()
        return [row["key"] for row in rows]
