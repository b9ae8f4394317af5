# src/task_sync/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..sync.api import SyncApi
from ..sync.export import SyncExport
from ..sync.ingest import SyncIngest
from .ports import CursorRepo, TaskRecordRepo


@dataclass
class AppState:
    """Everything built once at startup; passed explicitly to connectors and commands."""

    settings: object

    store: TaskRecordRepo
    cursors: CursorRepo

    ingest: SyncIngest
    export: SyncExport
    api: SyncApi
