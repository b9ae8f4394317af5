# src/task_sync/sync/ingest.py

"""
Batch push.

For each incoming record (independently):
- look up the stored version,
- ask the conflict policy who wins,
- upsert the winner or report a conflict.

A bad record never aborts the batch; it is reported in `errors`.
Only an unreachable store (StorageUnavailableError) fails the whole push.
The source's cursor is touched once per batch, after all records.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.ports import CursorRepo, TaskRecordRepo
from ..errors import RecordError, StorageUnavailableError, ValidationError
from .dto import record_from_dto, task_id_of
from .locks import KeyedLock
from .models import SyncSource, TaskRecord
from .resolver import REASON_SERVER_NEWER, RESOLUTION_SERVER_WINS, ConflictPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConflictEntry:
    task_id: str
    reason: str
    resolution: str

    def to_dict(self) -> dict[str, str]:
        return {"taskId": self.task_id, "reason": self.reason, "resolution": self.resolution}


@dataclass(frozen=True, slots=True)
class RecordFailure:
    task_id: str | None
    error: str

    def to_dict(self) -> dict[str, str | None]:
        return {"taskId": self.task_id, "error": self.error}


@dataclass(slots=True)
class PushResult:
    synced: int = 0
    unchanged: int = 0
    conflicts: list[ConflictEntry] = field(default_factory=list)
    errors: list[RecordFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "synced": self.synced,
            "unchanged": self.unchanged,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "errors": [e.to_dict() for e in self.errors],
        }


def parse_source(raw: object) -> SyncSource:
    try:
        return SyncSource.parse(raw)
    except ValueError as e:
        raise ValidationError(str(e)) from None


class SyncIngest:
    def __init__(
        self,
        store: TaskRecordRepo,
        cursors: CursorRepo,
        *,
        policy: ConflictPolicy | None = None,
        locks: KeyedLock | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._cursors = cursors
        self._policy = policy or ConflictPolicy()
        self._locks = locks or KeyedLock()
        self._clock = clock

    def push(self, source: object, records: Iterable[Mapping[str, Any] | TaskRecord] | None) -> PushResult:
        """
        Ingest a batch from one source.

        `records` may hold raw client DTOs (validated here, per record) or TaskRecord values.
        Raises ValidationError for a missing/unknown source before touching anything.
        """
        src = parse_source(source)
        items = list(records or [])
        result = PushResult()

        for item in items:
            try:
                record = self._coerce(item, src)
                self._apply_one(record, result)
            except StorageUnavailableError:
                raise
            except RecordError as e:
                task_id = e.task_id or task_id_of(item)
                logger.warning("Rejected malformed task id=%s source=%s: %s", task_id, src.value, e)
                result.errors.append(RecordFailure(task_id=task_id, error=str(e)))
            except Exception as e:
                task_id = item.id if isinstance(item, TaskRecord) else task_id_of(item)
                logger.exception("Failed to ingest task id=%s source=%s", task_id, src.value)
                result.errors.append(RecordFailure(task_id=task_id, error=str(e)))

        cursor = self._cursors.touch(src, now_ts=self._clock())

        logger.info(
            "Push source=%s tasks=%d synced=%d unchanged=%d conflicts=%d errors=%d sync_count=%d",
            src.value,
            len(items),
            result.synced,
            result.unchanged,
            len(result.conflicts),
            len(result.errors),
            cursor.sync_count,
        )
        return result

    @staticmethod
    def _coerce(item: Mapping[str, Any] | TaskRecord, source: SyncSource) -> TaskRecord:
        if isinstance(item, TaskRecord):
            return replace(item, source=source)
        return record_from_dto(item, source=source)

    def _apply_one(self, record: TaskRecord, result: PushResult) -> None:
        with self._locks.hold(record.id):
            existing = self._store.get_by_id(record.id)
            decision = self._policy.resolve(existing, record)

            if decision.unchanged:
                logger.debug("Task %s unchanged (replay)", record.id)
                result.unchanged += 1
                return

            if not decision.apply:
                logger.debug("Task %s rejected: %s", record.id, decision.reason)
                result.conflicts.append(
                    ConflictEntry(
                        task_id=record.id,
                        reason=decision.reason,
                        resolution=decision.resolution or RESOLUTION_SERVER_WINS,
                    )
                )
                return

            if not self._store.upsert(record):
                # Another process stored a newer version between our read and write.
                logger.debug("Task %s lost the write guard", record.id)
                result.conflicts.append(
                    ConflictEntry(
                        task_id=record.id,
                        reason=REASON_SERVER_NEWER,
                        resolution=RESOLUTION_SERVER_WINS,
                    )
                )
                return

            logger.debug("Task %s %s (source=%s)", record.id, decision.reason, record.source.value)
            result.synced += 1
