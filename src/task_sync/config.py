# src/task_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Read once by the entrypoint and passed down; library code never reads the environment.
"""

from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .sync.export import DEFAULT_PULL_LIMIT
from .sync.models import SyncSource
from .sync.resolver import DEFAULT_SOURCE_PRIORITY, TieBreak

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASK_SYNC"

STORE_BACKENDS = ("sqlite", "memory")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = _env(name, default).strip().lower()
    if raw not in choices:
        logger.warning("Ignoring %s=%r (expected one of %s)", name, raw, ", ".join(choices))
        return default
    return raw


def _parse_source_priority(names: list[str]) -> tuple[SyncSource, ...]:
    out: list[SyncSource] = []
    for n in names:
        try:
            src = SyncSource.parse(n)
        except ValueError:
            logger.warning("Ignoring unknown source %r in %s", n, _k("SOURCE_PRIORITY"))
            continue
        if src not in out:
            out.append(src)
    return tuple(out) or DEFAULT_SOURCE_PRIORITY


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Sync tuning ----
    store_backend: str
    pull_limit: int
    tie_break: TieBreak
    source_priority: tuple[SyncSource, ...]

    @staticmethod
    def from_env(
        *, load_env_file: bool = True, env_file: str | Path | None = None
    ) -> "Settings":
        if load_env_file:
            # .env next to where the app is started, not next to this module
            load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

        app_name = _env(_k("APP_NAME"), "task-sync") or "task-sync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_sync"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "sync.sqlite3")

        store_backend = _env_choice(_k("STORE_BACKEND"), "sqlite", STORE_BACKENDS)
        pull_limit = _env_int(_k("PULL_LIMIT"), DEFAULT_PULL_LIMIT)
        if pull_limit <= 0:
            pull_limit = DEFAULT_PULL_LIMIT

        tie_break = TieBreak(
            _env_choice(
                _k("TIE_BREAK"),
                TieBreak.INCOMING_WINS.value,
                tuple(t.value for t in TieBreak),
            )
        )
        source_priority = _parse_source_priority(
            _env_list(_k("SOURCE_PRIORITY"), [s.value for s in DEFAULT_SOURCE_PRIORITY])
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            store_backend=store_backend,
            pull_limit=pull_limit,
            tie_break=tie_break,
            source_priority=source_priority,
        )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
