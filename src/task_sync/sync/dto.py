# src/task_sync/sync/dto.py

"""
Wire <-> model conversion.

Clients exchange camelCase JSON objects with ISO-8601 timestamps.
Internally timestamps are UTC epoch seconds (floats).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ..errors import RecordError
from .models import (
    SyncCursor,
    SyncSource,
    SyncStatus,
    TaskPriority,
    TaskRecord,
    TaskSourceCount,
    TaskStatus,
)

DEFAULT_ESTIMATED_MINUTES = 30
DEFAULT_ACTUAL_MINUTES = 0


def parse_timestamp(raw: Any) -> float | None:
    """
    Parse an ISO-8601 timestamp into UTC epoch seconds.

    Accepts a trailing "Z" or an explicit offset; naive values are UTC.
    Sub-millisecond digits are dropped so the stored value matches what format_timestamp emits.
    Returns None for None/"" and raises ValueError for anything else unparseable.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            raise ValueError(f"invalid ISO-8601 timestamp: {raw!r}") from None
    else:
        raise ValueError(f"timestamp must be an ISO-8601 string, got {type(raw).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.replace(microsecond=dt.microsecond // 1000 * 1000)
    return dt.timestamp()


def format_timestamp(ts: float | None) -> str | None:
    if ts is None:
        return None
    dt = datetime.fromtimestamp(ts, tz=UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _num_out(x: float) -> int | float:
    return int(x) if float(x).is_integer() else float(x)


def _minutes(dto: Mapping[str, Any], key: str, default: int, task_id: str) -> float:
    raw = dto.get(key)
    if raw is None:
        return float(default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise RecordError(f"{key} must be a number", task_id=task_id)
    val = float(raw)
    if math.isnan(val) or math.isinf(val) or val < 0:
        raise RecordError(f"{key} must be a non-negative number", task_id=task_id)
    return val


def _status(dto: Mapping[str, Any], task_id: str) -> TaskStatus:
    raw = dto.get("status")
    if raw is not None:
        try:
            return TaskStatus(str(raw).strip().lower())
        except ValueError:
            raise RecordError(f"invalid status {raw!r}", task_id=task_id) from None

    # Older clients only send a completion flag.
    completed = dto.get("completed")
    if completed is None:
        return TaskStatus.PENDING
    if not isinstance(completed, bool):
        raise RecordError("completed must be a boolean", task_id=task_id)
    return TaskStatus.COMPLETED if completed else TaskStatus.PENDING


def _priority(dto: Mapping[str, Any], task_id: str) -> TaskPriority:
    raw = dto.get("priority")
    if raw is None or raw == "":
        return TaskPriority.MEDIUM
    try:
        return TaskPriority(str(raw).strip().lower())
    except ValueError:
        raise RecordError(f"invalid priority {raw!r}", task_id=task_id) from None


def task_id_of(dto: Any) -> str | None:
    """Best-effort id extraction for error reporting on malformed records."""
    if not isinstance(dto, Mapping):
        return None
    raw = dto.get("id")
    if raw is None or isinstance(raw, bool):
        return None
    return str(raw)


def record_from_dto(dto: Any, *, source: SyncSource) -> TaskRecord:
    """
    Build a TaskRecord from a client DTO, stamping it with the pushing source.

    Raises RecordError when the DTO is malformed.
    """
    if not isinstance(dto, Mapping):
        raise RecordError("task must be an object")

    raw_id = dto.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or not str(raw_id).strip():
        raise RecordError("id is required", task_id=task_id_of(dto))
    task_id = str(raw_id)

    title = dto.get("title")
    if not isinstance(title, str) or not title.strip():
        raise RecordError("title is required", task_id=task_id)

    description = dto.get("description")
    if description is None:
        description = ""
    if not isinstance(description, str):
        raise RecordError("description must be a string", task_id=task_id)

    try:
        created_at = parse_timestamp(dto.get("createdAt"))
        updated_at = parse_timestamp(dto.get("updatedAt"))
    except ValueError as e:
        raise RecordError(str(e), task_id=task_id) from None

    if updated_at is None:
        updated_at = created_at
    if updated_at is None:
        raise RecordError("updatedAt or createdAt is required", task_id=task_id)
    if created_at is None:
        created_at = updated_at

    return TaskRecord(
        id=task_id,
        title=title,
        description=description,
        status=_status(dto, task_id),
        priority=_priority(dto, task_id),
        estimated_minutes=_minutes(dto, "estimatedMinutes", DEFAULT_ESTIMATED_MINUTES, task_id),
        actual_minutes=_minutes(dto, "actualMinutes", DEFAULT_ACTUAL_MINUTES, task_id),
        created_at=created_at,
        updated_at=updated_at,
        source=source,
        sync_status=SyncStatus.SYNCED,
    )


def record_to_dto(record: TaskRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "description": record.description,
        "status": record.status.value,
        "completed": record.completed,
        "priority": record.priority.value,
        "estimatedMinutes": _num_out(record.estimated_minutes),
        "actualMinutes": _num_out(record.actual_minutes),
        "createdAt": format_timestamp(record.created_at),
        "updatedAt": format_timestamp(record.updated_at),
        "source": record.source.value,
        "syncStatus": record.sync_status.value,
    }


def cursor_to_dto(cursor: SyncCursor) -> dict[str, Any]:
    return {
        "source": cursor.source.value,
        "lastSyncAt": format_timestamp(cursor.last_sync_at),
        "syncCount": cursor.sync_count,
    }


def source_count_to_dto(row: TaskSourceCount) -> dict[str, Any]:
    return {
        "source": row.source.value,
        "total": row.total,
        "completed": row.completed,
        "last_updated": format_timestamp(row.last_updated),
    }
