# src/task_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs a single slash command given on the command line (task-sync /status), or
- starts the console REPL.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for name in ("store", "cursors"):
        res = getattr(state, name, None)
        close = getattr(res, "close", None)
        if close is None:
            continue
        try:
            close()
        except Exception:
            logger.debug("%s close failed.", name, exc_info=True)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    state = create_initial_state(settings=settings)

    try:
        if argv:
            line = " ".join(argv)
            if not line.startswith("/"):
                line = "/" + line
            reply = command_registry.handle(state, line)
            print(reply)
            return 0

        run_console_loop(state)
        return 0
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
