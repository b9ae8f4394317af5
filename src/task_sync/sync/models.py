# src/task_sync/sync/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

_SOURCE_ALIASES = {
    # The vault plugin tagged its writes "obsidian" before the tag was generalized.
    "obsidian": "vault",
}


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class SyncSource(StrEnum):
    """Client population that produced a record's current contents."""

    VAULT = "vault"
    EXTENSION = "extension"
    SERVER = "server"

    @classmethod
    def parse(cls, raw: object) -> SyncSource:
        """Parse a source tag (case-insensitive, legacy aliases allowed). Raises ValueError."""
        if isinstance(raw, SyncSource):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError("source is required")
        s = raw.strip().lower()
        s = _SOURCE_ALIASES.get(s, s)
        try:
            return cls(s)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"unknown source {raw!r} (expected one of: {allowed})") from None


class SyncStatus(StrEnum):
    """
    Client-side lifecycle tag.

    local -> pending -> synced; conflict when a push is rejected,
    back to pending on the next local edit. The server only stores "synced".
    """

    LOCAL = "local"
    PENDING = "pending"
    SYNCED = "synced"
    CONFLICT = "conflict"

    @classmethod
    def from_db(cls, raw: str | None) -> SyncStatus:
        if not raw:
            return cls.SYNCED
        try:
            return cls(raw)
        except ValueError:
            return cls.SYNCED


@dataclass(frozen=True, slots=True)
class TaskRecord:
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority

    estimated_minutes: float
    actual_minutes: float

    # UTC epoch seconds
    created_at: float
    updated_at: float

    source: SyncSource
    sync_status: SyncStatus = SyncStatus.SYNCED

    def content_key(self) -> tuple:
        """Everything a write replaces. createdAt and syncStatus are not part of it."""
        return (
            self.id,
            self.title,
            self.description,
            self.status.value,
            self.priority.value,
            float(self.estimated_minutes),
            float(self.actual_minutes),
            self.updated_at,
            self.source.value,
        )

    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class SyncCursor:
    source: SyncSource
    last_sync_at: float
    sync_count: int


@dataclass(frozen=True, slots=True)
class TaskSourceCount:
    source: SyncSource
    total: int
    completed: int
    last_updated: float | None
