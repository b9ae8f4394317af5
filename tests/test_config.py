# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from task_sync.config import Settings
from task_sync.sync.models import SyncSource
from task_sync.sync.resolver import DEFAULT_SOURCE_PRIORITY, TieBreak

_VARS = (
    "APP_NAME",
    "LOG_LEVEL",
    "DATA_DIR",
    "DB_PATH",
    "STORE_BACKEND",
    "PULL_LIMIT",
    "TIE_BREAK",
    "SOURCE_PRIORITY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for v in _VARS:
        monkeypatch.delenv(f"TASK_SYNC_{v}", raising=False)


def test_defaults() -> None:
    s = Settings.from_env(load_env_file=False)
    assert s.app_name == "task-sync"
    assert s.store_backend == "sqlite"
    assert s.pull_limit == 100
    assert s.tie_break == TieBreak.INCOMING_WINS
    assert s.source_priority == DEFAULT_SOURCE_PRIORITY
    assert s.db_path == Path(".local/task_sync") / "sync.sqlite3"


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASK_SYNC_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASK_SYNC_STORE_BACKEND", "Memory")
    monkeypatch.setenv("TASK_SYNC_PULL_LIMIT", "25")
    monkeypatch.setenv("TASK_SYNC_TIE_BREAK", "source_priority")
    monkeypatch.setenv("TASK_SYNC_SOURCE_PRIORITY", "extension, obsidian")

    s = Settings.from_env(load_env_file=False)

    assert s.data_dir == tmp_path
    assert s.db_path == tmp_path / "sync.sqlite3"
    assert s.store_backend == "memory"
    assert s.pull_limit == 25
    assert s.tie_break == TieBreak.SOURCE_PRIORITY
    assert s.source_priority == (SyncSource.EXTENSION, SyncSource.VAULT)


@pytest.mark.parametrize(
    ("var", "value", "attr", "expected"),
    [
        ("PULL_LIMIT", "lots", "pull_limit", 100),
        ("PULL_LIMIT", "-3", "pull_limit", 100),
        ("STORE_BACKEND", "postgres", "store_backend", "sqlite"),
        ("TIE_BREAK", "coin_flip", "tie_break", TieBreak.INCOMING_WINS),
        ("SOURCE_PRIORITY", "phone tablet", "source_priority", DEFAULT_SOURCE_PRIORITY),
    ],
)
def test_invalid_values_fall_back(monkeypatch, var, value, attr, expected) -> None:
    monkeypatch.setenv(f"TASK_SYNC_{var}", value)
    assert getattr(Settings.from_env(load_env_file=False), attr) == expected


def test_env_file_is_loaded(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("TASK_SYNC_PULL_LIMIT=7\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # dotenv writes into os.environ; let monkeypatch undo it
    monkeypatch.setenv("TASK_SYNC_PULL_LIMIT", "")
    monkeypatch.delenv("TASK_SYNC_PULL_LIMIT")

    assert Settings.from_env().pull_limit == 7


def test_process_env_beats_env_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("TASK_SYNC_TIE_BREAK=existing_wins\nTASK_SYNC_PULL_LIMIT=9\n", encoding="utf-8")
    monkeypatch.setenv("TASK_SYNC_PULL_LIMIT", "12")
    monkeypatch.setenv("TASK_SYNC_TIE_BREAK", "")
    monkeypatch.delenv("TASK_SYNC_TIE_BREAK")

    s = Settings.from_env(env_file=env_file)

    assert s.pull_limit == 12
    assert s.tie_break == TieBreak.EXISTING_WINS
