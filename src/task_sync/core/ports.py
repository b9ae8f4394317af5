# src/task_sync/core/ports.py

"""
Ports (interfaces) used by the sync core.

Ingest/Export depend on Protocols instead of concrete stores.
This keeps the backing engine (SQLite, in-memory, ...) swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Protocol

from ..sync.models import SyncCursor, SyncSource, TaskRecord, TaskSourceCount


class TaskRecordRepo(Protocol):
    # Sync API (the only calls Ingest/Export make)
    def upsert(self, record: TaskRecord) -> bool: ...
    def get_by_id(self, task_id: str) -> TaskRecord | None: ...
    def list_since(
            self,
            since: float | None,
            exclude_source: SyncSource | None,
            limit: int,
    ) -> list[TaskRecord]: ...

    # Status / administrative clear
    def count(self) -> int: ...
    def count_by_source(self) -> list[TaskSourceCount]: ...
    def delete_by_source(self, source: SyncSource | None) -> int: ...


class CursorRepo(Protocol):
    def touch(self, source: SyncSource, *, now_ts: float | None = None) -> SyncCursor: ...
    def get(self, source: SyncSource) -> SyncCursor | None: ...
    def list(self, source: SyncSource | None = None) -> list[SyncCursor]: ...
    def delete(self, source: SyncSource | None) -> int: ...
