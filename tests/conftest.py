# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_sync.cli.bootstrap import build_state
from task_sync.core.state import AppState
from task_sync.sync.cursor_registry import CursorRegistry, InMemoryCursorRegistry
from task_sync.sync.export import DEFAULT_PULL_LIMIT
from task_sync.sync.record_store import InMemoryTaskRecordStore, TaskRecordStore
from task_sync.sync.resolver import DEFAULT_SOURCE_PRIORITY, TieBreak


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-sync-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "sync.sqlite3",
        store_backend="sqlite",
        pull_limit=DEFAULT_PULL_LIMIT,
        tie_break=TieBreak.INCOMING_WINS,
        source_priority=DEFAULT_SOURCE_PRIORITY,
    )


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """Both store backends must honor the same contract."""
    if request.param == "sqlite":
        return TaskRecordStore(tmp_path / "records.sqlite3")
    return InMemoryTaskRecordStore()


@pytest.fixture(params=["sqlite", "memory"])
def cursors(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "sqlite":
        return CursorRegistry(tmp_path / "cursors.sqlite3")
    return InMemoryCursorRegistry()


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired like production.

    NOTE: We keep real SQLite stores here because their correctness
    is part of what we want to test.
    """
    return build_state(
        settings,
        TaskRecordStore(settings.db_path),
        CursorRegistry(settings.db_path),
    )
