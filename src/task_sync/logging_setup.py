# src/task_sync/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


# Console floors for chatty modules; the file handler still gets everything.
_CONSOLE_FLOORS: dict[str, int] = {
    # one DEBUG line per stored row
    "task_sync.sync.record_store": logging.WARNING,
    "task_sync.sync.cursor_registry": logging.WARNING,
    # one DEBUG line per record decision; the per-push summary is INFO
    "task_sync.sync.ingest": logging.INFO,
    "task_sync.sync.export": logging.INFO,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable during large pushes:
    - task_sync logs pass, except per-record chatter from the sync modules above
    - Python warnings (captured as 'py.warnings') only at ERROR+
    - third-party loggers only at ERROR+
    """

    def __init__(self, floors: dict[str, int] | None = None) -> None:
        super().__init__()
        self._floors = dict(_CONSOLE_FLOORS if floors is None else floors)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "task_sync" or name.startswith("task_sync."):
            floor = self._floors.get(name)
            return floor is None or record.levelno >= floor

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_sync",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    console_floors: dict[str, int] | None = None,
) -> Path:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging (no per-module floors)

    Call this ONCE, very early (before first logger.info). Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "task_sync.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter(console_floors))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
    return log_file
