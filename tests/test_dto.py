# tests/test_dto.py

from __future__ import annotations

import pytest

from task_sync.errors import RecordError
from task_sync.sync.dto import (
    format_timestamp,
    parse_timestamp,
    record_from_dto,
    record_to_dto,
)
from task_sync.sync.models import SyncSource, SyncStatus, TaskPriority, TaskStatus

from .fakes import T0, make_dto


def test_parse_timestamp_variants() -> None:
    assert parse_timestamp("2024-05-01T10:00:00.000Z") == T0
    assert parse_timestamp("2024-05-01T12:00:00+02:00") == T0
    assert parse_timestamp("2024-05-01T10:00:00") == T0  # naive -> UTC
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None

    with pytest.raises(ValueError):
        parse_timestamp("yesterday")
    with pytest.raises(ValueError):
        parse_timestamp(1714557600)


def test_format_timestamp_is_utc_millis() -> None:
    assert format_timestamp(T0) == "2024-05-01T10:00:00.000Z"
    assert format_timestamp(T0 + 0.25) == "2024-05-01T10:00:00.250Z"
    assert format_timestamp(None) is None


def test_sub_millisecond_input_survives_a_round_trip() -> None:
    parsed = parse_timestamp("2024-05-01T10:00:00.123456Z")
    assert parsed == parse_timestamp("2024-05-01T10:00:00.123Z")
    assert format_timestamp(parsed) == "2024-05-01T10:00:00.123Z"
    assert parse_timestamp(format_timestamp(parsed)) == parsed
    # truncated, not rounded
    assert format_timestamp(parse_timestamp("2024-05-01T10:00:00.999999Z")) == (
        "2024-05-01T10:00:00.999Z"
    )



def test_record_from_dto_stamps_push_source() -> None:
    rec = record_from_dto(make_dto("T1", source="extension"), source=SyncSource.VAULT)
    assert rec.id == "T1"
    assert rec.source == SyncSource.VAULT
    assert rec.sync_status == SyncStatus.SYNCED


def test_record_from_dto_defaults_and_legacy_completed_flag() -> None:
    dto = {"id": 42, "title": "Write intro", "completed": True, "createdAt": "2024-05-01T10:00:00Z"}
    rec = record_from_dto(dto, source=SyncSource.EXTENSION)

    assert rec.id == "42"
    assert rec.status == TaskStatus.COMPLETED
    assert rec.priority == TaskPriority.MEDIUM
    assert rec.estimated_minutes == 30
    assert rec.actual_minutes == 0
    assert rec.description == ""
    # updatedAt falls back to createdAt
    assert rec.updated_at == rec.created_at == T0


def test_explicit_status_wins_over_completed_flag() -> None:
    rec = record_from_dto(make_dto(status="in_progress", completed=True), source=SyncSource.VAULT)
    assert rec.status == TaskStatus.IN_PROGRESS


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"id": ""}, "id is required"),
        ({"title": "   "}, "title is required"),
        ({"status": "done"}, "invalid status"),
        ({"priority": "critical"}, "invalid priority"),
        ({"estimatedMinutes": -5}, "non-negative"),
        ({"actualMinutes": "ten"}, "must be a number"),
        ({"updatedAt": "not-a-date"}, "invalid ISO-8601"),
        ({"createdAt": None, "updatedAt": None}, "updatedAt or createdAt is required"),
    ],
)
def test_malformed_dtos_raise_record_error(overrides, message) -> None:
    with pytest.raises(RecordError, match=message) as exc_info:
        record_from_dto(make_dto("T9", **overrides), source=SyncSource.VAULT)
    if overrides.get("id") != "":
        assert exc_info.value.task_id == "T9"


def test_non_object_task_is_rejected() -> None:
    with pytest.raises(RecordError):
        record_from_dto(["not", "a", "task"], source=SyncSource.VAULT)


def test_record_to_dto_shape() -> None:
    rec = record_from_dto(
        make_dto("T1", minutes=5, status="completed", estimatedMinutes=12.5),
        source=SyncSource.VAULT,
    )
    dto = record_to_dto(rec)
    assert dto == {
        "id": "T1",
        "title": "Task T1",
        "description": "",
        "status": "completed",
        "completed": True,
        "priority": "medium",
        "estimatedMinutes": 12.5,
        "actualMinutes": 0,
        "createdAt": "2024-05-01T10:00:00.000Z",
        "updatedAt": "2024-05-01T10:05:00.000Z",
        "source": "vault",
        "syncStatus": "synced",
    }
