# src/task_sync/sync/export.py

from __future__ import annotations

import logging

from ..core.ports import TaskRecordRepo
from .models import SyncSource, TaskRecord

logger = logging.getLogger(__name__)

DEFAULT_PULL_LIMIT = 100


class SyncExport:
    """
    Incremental pull.

    Returns records changed after `since`, newest first, capped at `limit`,
    excluding records whose current source is the requester (echo suppression).

    The cap means a client with more than `limit` pending remote changes only
    sees the newest ones; it has to pull again.
    """

    def __init__(self, store: TaskRecordRepo, *, limit: int = DEFAULT_PULL_LIMIT) -> None:
        self._store = store
        self._limit = max(1, int(limit))

    @property
    def limit(self) -> int:
        return self._limit

    def pull(self, source: SyncSource | None = None, since: float | None = None) -> list[TaskRecord]:
        records = self._store.list_since(since, source, self._limit)
        logger.debug(
            "Pull source=%s since=%s -> %d records",
            source.value if source else None,
            since,
            len(records),
        )
        return records
