# src/task_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- ensures local (gitignored) directories exist,
- picks the storage backend,
- wires store, cursor registry, conflict policy, ingest, export and API into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import CursorRepo, TaskRecordRepo
from ..core.state import AppState
from ..sync.api import SyncApi
from ..sync.cursor_registry import CursorRegistry, InMemoryCursorRegistry
from ..sync.export import SyncExport
from ..sync.ingest import SyncIngest
from ..sync.locks import KeyedLock
from ..sync.record_store import InMemoryTaskRecordStore, TaskRecordStore
from ..sync.resolver import ConflictPolicy

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_state(settings, store: TaskRecordRepo, cursors: CursorRepo) -> AppState:
    """Wire the sync services around an already constructed store and cursor registry."""
    policy = ConflictPolicy(
        tie_break=settings.tie_break,
        source_priority=tuple(settings.source_priority),
    )
    ingest = SyncIngest(store, cursors, policy=policy, locks=KeyedLock())
    export = SyncExport(store, limit=settings.pull_limit)
    api = SyncApi(ingest=ingest, export=export, store=store, cursors=cursors)
    return AppState(
        settings=settings,
        store=store,
        cursors=cursors,
        ingest=ingest,
        export=export,
        api=api,
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    store: TaskRecordRepo
    cursors: CursorRepo
    if settings.store_backend == "memory":
        store = InMemoryTaskRecordStore()
        cursors = InMemoryCursorRegistry()
    else:
        _ensure_local_dirs(settings)
        store = TaskRecordStore(settings.db_path)
        cursors = CursorRegistry(settings.db_path)

    logger.info(
        "Sync services ready backend=%s pull_limit=%s tie_break=%s",
        settings.store_backend,
        settings.pull_limit,
        settings.tie_break,
    )
    return build_state(settings, store, cursors)
