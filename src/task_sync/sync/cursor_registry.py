# src/task_sync/sync/cursor_registry.py

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path

from ..errors import StorageError
from .models import SyncCursor, SyncSource
from .record_store import sqlite_session

logger = logging.getLogger(__name__)


class CursorRegistry:
    """
    Per-source sync bookkeeping (SQLite).

    One row per client population. Rows are created on first push and only
    removed by the administrative clear.
    """

    def __init__(self, db_path: str | Path = "sync.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with sqlite_session(self._db_path, "cursor schema setup") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_cursors (
                    source TEXT PRIMARY KEY,
                    last_sync_at REAL NOT NULL,
                    sync_count INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()

    @staticmethod
    def _row_to_cursor(row: sqlite3.Row) -> SyncCursor:
        return SyncCursor(
            source=SyncSource.parse(row["source"]),
            last_sync_at=float(row["last_sync_at"]),
            sync_count=int(row["sync_count"]),
        )

    def touch(self, source: SyncSource, *, now_ts: float | None = None) -> SyncCursor:
        """Create the cursor (count=1) or bump it by one; a single atomic statement."""
        if now_ts is None:
            now_ts = time.time()

        with sqlite_session(self._db_path, f"touch source={source.value}") as conn:
            conn.execute(
                """
                INSERT INTO sync_cursors(source, last_sync_at, sync_count)
                VALUES (?, ?, 1)
                ON CONFLICT(source) DO UPDATE SET
                    last_sync_at = excluded.last_sync_at,
                    sync_count = sync_cursors.sync_count + 1
                """,
                (source.value, float(now_ts)),
            )
            row = conn.execute(
                "SELECT * FROM sync_cursors WHERE source = ?", (source.value,)
            ).fetchone()
            conn.commit()

        if row is None:
            raise StorageError(f"cursor for {source.value} vanished after touch")
        cursor = self._row_to_cursor(row)
        logger.debug("Cursor touched source=%s count=%s", source.value, cursor.sync_count)
        return cursor

    def get(self, source: SyncSource) -> SyncCursor | None:
        with sqlite_session(self._db_path, "cursor get") as conn:
            row = conn.execute(
                "SELECT * FROM sync_cursors WHERE source = ?", (source.value,)
            ).fetchone()
            return self._row_to_cursor(row) if row else None

    def list(self, source: SyncSource | None = None) -> list[SyncCursor]:
        with sqlite_session(self._db_path, "cursor list") as conn:
            if source is None:
                rows = conn.execute(
                    "SELECT * FROM sync_cursors ORDER BY last_sync_at DESC"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM sync_cursors WHERE source = ? ORDER BY last_sync_at DESC",
                    (source.value,),
                ).fetchall()
            return [self._row_to_cursor(r) for r in rows]

    def delete(self, source: SyncSource | None) -> int:
        with sqlite_session(self._db_path, "cursor delete") as conn:
            if source is None:
                cur = conn.execute("DELETE FROM sync_cursors")
            else:
                cur = conn.execute("DELETE FROM sync_cursors WHERE source = ?", (source.value,))
            conn.commit()
            return int(cur.rowcount)


class InMemoryCursorRegistry:
    def __init__(self) -> None:
        self._cursors: dict[SyncSource, SyncCursor] = {}
        self._lock = threading.Lock()

    def touch(self, source: SyncSource, *, now_ts: float | None = None) -> SyncCursor:
        if now_ts is None:
            now_ts = time.time()
        with self._lock:
            prev = self._cursors.get(source)
            count = 1 if prev is None else prev.sync_count + 1
            cursor = SyncCursor(source=source, last_sync_at=float(now_ts), sync_count=count)
            self._cursors[source] = cursor
            return cursor

    def get(self, source: SyncSource) -> SyncCursor | None:
        with self._lock:
            return self._cursors.get(source)

    def list(self, source: SyncSource | None = None) -> list[SyncCursor]:
        with self._lock:
            out = [c for c in self._cursors.values() if source is None or c.source == source]
        out.sort(key=lambda c: c.last_sync_at, reverse=True)
        return out

    def delete(self, source: SyncSource | None) -> int:
        with self._lock:
            if source is None:
                n = len(self._cursors)
                self._cursors.clear()
                return n
            return 1 if self._cursors.pop(source, None) is not None else 0
