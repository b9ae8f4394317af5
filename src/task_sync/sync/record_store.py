# src/task_sync/sync/record_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

from ..errors import StorageError, StorageUnavailableError
from .models import (
    SyncSource,
    SyncStatus,
    TaskPriority,
    TaskRecord,
    TaskSourceCount,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def open_sqlite(db_path: Path) -> sqlite3.Connection:
    """Open a short-lived connection; failure to open means the store is unavailable."""
    try:
        conn = sqlite3.connect(str(db_path), timeout=30.0)
    except sqlite3.Error as e:
        raise StorageUnavailableError(f"cannot open database {db_path}: {e}") from e
    try:
        # connect() is lazy about the file; make it actually read the header.
        conn.execute("PRAGMA schema_version").fetchone()
    except sqlite3.Error as e:
        conn.close()
        raise StorageUnavailableError(f"cannot open database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    with contextlib.suppress(sqlite3.Error):
        conn.execute("PRAGMA journal_mode=WAL")
    return conn


@contextlib.contextmanager
def sqlite_session(db_path: Path, what: str) -> Iterator[sqlite3.Connection]:
    conn = open_sqlite(db_path)
    try:
        yield conn
    except sqlite3.Error as e:
        raise StorageError(f"{what} failed: {e}") from e
    finally:
        conn.close()


class TaskRecordStore:
    """
    SQLite task record store.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Writes go through upsert() only. The upsert is guarded in SQL so that
    updated_at never moves backward for an id, even with writers in other processes.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "sync.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskRecordStore ready db=%s total=%s", self._db_path, self.count())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _ensure_schema(self) -> None:
        with sqlite_session(self._db_path, "schema setup") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_records (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    estimated_minutes REAL NOT NULL DEFAULT 30,
                    actual_minutes REAL NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    source TEXT NOT NULL,
                    sync_status TEXT NOT NULL DEFAULT 'synced'
                )
                """
            )

            cur.execute("PRAGMA table_info(task_records)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE task_records ADD COLUMN {name} {decl}")
                logger.info("TaskRecordStore migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("estimated_minutes", "REAL NOT NULL DEFAULT 30")
            add_col("actual_minutes", "REAL NOT NULL DEFAULT 0")
            add_col("sync_status", "TEXT NOT NULL DEFAULT 'synced'")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_records_updated ON task_records(updated_at)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_records_source "
                "ON task_records(source, updated_at)"
            )
            conn.commit()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> TaskRecord:
        return TaskRecord(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            estimated_minutes=float(row["estimated_minutes"] or 0.0),
            actual_minutes=float(row["actual_minutes"] or 0.0),
            created_at=float(row["created_at"]),
            updated_at=float(row["updated_at"]),
            source=SyncSource.parse(row["source"]),
            sync_status=SyncStatus.from_db(row["sync_status"]),
        )

    # ---- public API ----

    def count(self) -> int:
        with sqlite_session(self._db_path, "count") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM task_records").fetchone()
            return int(n)

    def upsert(self, record: TaskRecord) -> bool:
        """
        Insert or replace a record by id, keeping the stored created_at.

        Returns False when the stored version is newer (nothing written).
        Re-writing an identical record leaves the row unchanged.
        """
        with sqlite_session(self._db_path, f"upsert id={record.id}") as conn:
            cur = conn.execute(
                """
                INSERT INTO task_records(
                    id, title, description, status, priority,
                    estimated_minutes, actual_minutes,
                    created_at, updated_at, source, sync_status
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    status = excluded.status,
                    priority = excluded.priority,
                    estimated_minutes = excluded.estimated_minutes,
                    actual_minutes = excluded.actual_minutes,
                    updated_at = excluded.updated_at,
                    source = excluded.source,
                    sync_status = excluded.sync_status
                WHERE excluded.updated_at >= task_records.updated_at
                """,
                (
                    record.id,
                    record.title,
                    record.description,
                    record.status.value,
                    record.priority.value,
                    float(record.estimated_minutes),
                    float(record.actual_minutes),
                    float(record.created_at),
                    float(record.updated_at),
                    record.source.value,
                    record.sync_status.value,
                ),
            )
            conn.commit()
            written = cur.rowcount == 1
            logger.debug(
                "Upsert id=%s source=%s updated_at=%s written=%s",
                record.id,
                record.source.value,
                record.updated_at,
                written,
            )
            return written

    def get_by_id(self, task_id: str) -> TaskRecord | None:
        with sqlite_session(self._db_path, f"get id={task_id}") as conn:
            row = conn.execute(
                "SELECT * FROM task_records WHERE id = ?", (str(task_id),)
            ).fetchone()
            return self._row_to_record(row) if row else None

    def list_since(
        self,
        since: float | None,
        exclude_source: SyncSource | None,
        limit: int,
    ) -> list[TaskRecord]:
        """
        Records changed after `since` and not currently owned by `exclude_source`,
        newest first, at most `limit`.
        """
        if limit <= 0:
            return []

        clauses: list[str] = []
        params: list[object] = []
        if since is not None:
            clauses.append("updated_at > ?")
            params.append(float(since))
        if exclude_source is not None:
            clauses.append("source != ?")
            params.append(exclude_source.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with sqlite_session(self._db_path, "list_since") as conn:
            rows = conn.execute(
                f"""
                SELECT *
                FROM task_records
                {where}
                ORDER BY updated_at DESC, id ASC
                    LIMIT ?
                """,
                params,
            ).fetchall()
            return [self._row_to_record(r) for r in rows]

    def count_by_source(self) -> list[TaskSourceCount]:
        with sqlite_session(self._db_path, "count_by_source") as conn:
            rows = conn.execute(
                """
                SELECT source,
                       COUNT(*) AS total,
                       SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed,
                       MAX(updated_at) AS last_updated
                FROM task_records
                GROUP BY source
                ORDER BY source ASC
                """
            ).fetchall()
            return [
                TaskSourceCount(
                    source=SyncSource.parse(r["source"]),
                    total=int(r["total"]),
                    completed=int(r["completed"] or 0),
                    last_updated=float(r["last_updated"]) if r["last_updated"] is not None else None,
                )
                for r in rows
            ]

    def delete_by_source(self, source: SyncSource | None) -> int:
        """Administrative clear: delete one source's records, or all when source is None."""
        with sqlite_session(self._db_path, "delete_by_source") as conn:
            if source is None:
                cur = conn.execute("DELETE FROM task_records")
            else:
                cur = conn.execute("DELETE FROM task_records WHERE source = ?", (source.value,))
            conn.commit()
            deleted = int(cur.rowcount)
            logger.info(
                "Deleted %d task records source=%s", deleted, source.value if source else "*"
            )
            return deleted


class InMemoryTaskRecordStore:
    """Dict-backed store with the same contract as TaskRecordStore (tests, ephemeral runs)."""

    def __init__(self) -> None:
        self._records: dict[str, TaskRecord] = {}
        self._lock = threading.Lock()

    def close(self) -> None:
        return

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def upsert(self, record: TaskRecord) -> bool:
        with self._lock:
            existing = self._records.get(record.id)
            if existing is not None:
                if record.updated_at < existing.updated_at:
                    return False
                record = replace(record, created_at=existing.created_at)
            self._records[record.id] = record
            return True

    def get_by_id(self, task_id: str) -> TaskRecord | None:
        with self._lock:
            return self._records.get(str(task_id))

    def list_since(
        self,
        since: float | None,
        exclude_source: SyncSource | None,
        limit: int,
    ) -> list[TaskRecord]:
        if limit <= 0:
            return []
        with self._lock:
            out = [
                r
                for r in self._records.values()
                if (since is None or r.updated_at > since)
                and (exclude_source is None or r.source != exclude_source)
            ]
        out.sort(key=lambda r: r.id)
        out.sort(key=lambda r: r.updated_at, reverse=True)
        return out[:limit]

    def count_by_source(self) -> list[TaskSourceCount]:
        with self._lock:
            records = list(self._records.values())
        grouped: dict[SyncSource, list[TaskRecord]] = {}
        for r in records:
            grouped.setdefault(r.source, []).append(r)
        return [
            TaskSourceCount(
                source=src,
                total=len(rs),
                completed=sum(1 for r in rs if r.completed),
                last_updated=max(r.updated_at for r in rs),
            )
            for src, rs in sorted(grouped.items(), key=lambda kv: kv[0].value)
        ]

    def delete_by_source(self, source: SyncSource | None) -> int:
        with self._lock:
            if source is None:
                deleted = len(self._records)
                self._records.clear()
                return deleted
            doomed = [k for k, r in self._records.items() if r.source == source]
            for k in doomed:
                del self._records[k]
            return len(doomed)
