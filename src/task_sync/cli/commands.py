# src/task_sync/cli/commands.py

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, cast

from ..core.state import AppState
from ..sync.api import ApiResponse

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /push, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def render_response(resp: ApiResponse) -> str:
    return f"[{resp.status_code}]\n" + json.dumps(resp.body, ensure_ascii=False, indent=2)


def _load_tasks_file(path: Path) -> list[Any]:
    """A push file holds either a JSON list of tasks or an object with a "tasks" list."""
    data = json.loads(path.read_text("utf-8"))
    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list):
        raise ValueError("expected a JSON list of tasks or an object with a 'tasks' list")
    return data


def _arg_or_none(args: list[str], i: int) -> str | None:
    if len(args) <= i:
        return None
    v = args[i].strip()
    return None if v in ("", "-", "*") else v


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_push(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /push <source> <file.json>
    """
    if len(args) < 2:
        return "Usage: /push <vault|extension|server> <tasks.json>"

    source, raw_path = args[0], args[1]
    path = Path(raw_path).expanduser()
    try:
        tasks = _load_tasks_file(path)
    except (OSError, ValueError) as e:
        logger.info("Cannot read push file %s: %s", path, e)
        return f"Cannot read {path}: {e}"

    if emit:
        emit(f"Pushing {len(tasks)} task(s) from {path} as {source}...")
    return render_response(state.api.handle_push({"source": source, "tasks": tasks}))


def cmd_pull(state: AppState, args: list[str]) -> str:
    """
    /pull                  -> newest records from every source
    /pull vault            -> everything not written by vault
    /pull vault 2024-...   -> ... changed after the timestamp
    /pull - 2024-...       -> every source, changed after the timestamp
    """
    query = {"source": _arg_or_none(args, 0), "since": _arg_or_none(args, 1)}
    return render_response(state.api.handle_pull(query))


def cmd_status(state: AppState, args: list[str]) -> str:
    return render_response(state.api.handle_status({"source": _arg_or_none(args, 0)}))


def cmd_clear(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /clear CLEAR_SYNC_DATA           -> delete everything
    /clear CLEAR_SYNC_DATA vault     -> delete vault records and the vault cursor
    """
    body = {"confirm": args[0] if args else None, "source": _arg_or_none(args, 1)}
    resp = state.api.handle_clear(body)
    if emit and resp.ok:
        emit("Sync data cleared.")
    return render_response(resp)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("push", cmd_push, help_text="Push tasks from a JSON file: /push <source> <file>.")
registry.register("pull", cmd_pull, help_text="Pull changes: /pull [source|-] [since].")
registry.register("status", cmd_status, help_text="Show cursors and per-source counts: /status [source].")
registry.register(
    "clear",
    cmd_clear,
    help_text="Delete sync data: /clear CLEAR_SYNC_DATA [source].",
)
