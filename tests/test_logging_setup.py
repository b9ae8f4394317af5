# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from task_sync.logging_setup import _ConsoleNoiseFilter, setup_logging


def _rec(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("task_sync.sync.api", logging.DEBUG, True),
        ("task_sync.cli.main", logging.INFO, True),
        ("task_sync.sync.ingest", logging.DEBUG, False),
        ("task_sync.sync.ingest", logging.INFO, True),
        ("task_sync.sync.record_store", logging.INFO, False),
        ("task_sync.sync.record_store", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("urllib3.connectionpool", logging.WARNING, False),
        ("urllib3.connectionpool", logging.ERROR, True),
        # prefix match must not leak to look-alike packages
        ("task_sync_extra", logging.INFO, False),
    ],
)
def test_console_filter(name, level, shown) -> None:
    assert _ConsoleNoiseFilter().filter(_rec(name, level)) is shown


def test_console_filter_custom_floors() -> None:
    f = _ConsoleNoiseFilter({"task_sync.sync.api": logging.ERROR})
    assert not f.filter(_rec("task_sync.sync.api", logging.WARNING))
    assert f.filter(_rec("task_sync.sync.ingest", logging.DEBUG))


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_writes_full_log_file(tmp_path, restore_root_logging) -> None:
    log_file = setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)

    logging.getLogger("task_sync.sync.ingest").debug("Task T1 created")
    for h in logging.getLogger().handlers:
        h.flush()

    assert log_file == tmp_path / "logs" / "task_sync.log"
    assert "Task T1 created" in log_file.read_text(encoding="utf-8")
    assert len(logging.getLogger().handlers) == 2
