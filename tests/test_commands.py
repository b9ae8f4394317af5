# tests/test_commands.py

from __future__ import annotations

import json

from task_sync.cli.commands import CommandRegistry, registry
from task_sync.sync.api import CLEAR_CONFIRM_TOKEN

from .fakes import make_dto


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_passes_emit_when_signature_is_unreadable(state) -> None:
    reg = CommandRegistry()
    notes: list[str] = []

    def handler(state, args, emit):
        emit("working")
        return "done:" + ",".join(args)

    # inspect.signature() raises TypeError on a malformed __signature__
    handler.__signature__ = "not a signature"  # type: ignore[attr-defined]
    reg.register("opaque", handler, "opaque")

    assert reg.handle(state, "/opaque x", emit=notes.append) == "done:x"
    assert notes == ["working"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    out = registry.handle(state, "/help") or ""
    for name in ("push", "pull", "status", "clear"):
        assert f"/{name}" in out


def _body(reply: str | None) -> dict:
    assert reply is not None
    code, _, payload = reply.partition("\n")
    body = json.loads(payload)
    body["_status"] = int(code.strip("[]"))
    return body


def test_push_from_file_then_pull(state, tmp_path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"tasks": [make_dto("T1"), make_dto("T2")]}), encoding="utf-8")
    notes: list[str] = []

    pushed = _body(registry.handle(state, f"/push vault {path}", emit=notes.append))
    assert pushed["_status"] == 200
    assert pushed["data"]["synced"] == 2
    assert notes and "2 task(s)" in notes[0]

    pulled = _body(registry.handle(state, "/pull extension"))
    assert sorted(t["id"] for t in pulled["data"]) == ["T1", "T2"]

    status = _body(registry.handle(state, "/status vault"))
    assert status["data"]["syncMetadata"][0]["syncCount"] == 1


def test_push_reports_unreadable_file(state, tmp_path) -> None:
    missing = tmp_path / "missing.json"
    assert "Cannot read" in (registry.handle(state, f"/push vault {missing}") or "")

    bad = tmp_path / "bad.json"
    bad.write_text('"just a string"', encoding="utf-8")
    assert "Cannot read" in (registry.handle(state, f"/push vault {bad}") or "")

    assert "Usage" in (registry.handle(state, "/push vault") or "")
    assert state.store.count() == 0


def test_pull_with_bad_source_is_a_bad_request(state) -> None:
    assert _body(registry.handle(state, "/pull phone"))["_status"] == 400


def test_clear_needs_the_token(state, tmp_path) -> None:
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([make_dto("T1")]), encoding="utf-8")
    registry.handle(state, f"/push vault {path}")

    assert _body(registry.handle(state, "/clear yes"))["_status"] == 400
    assert state.store.count() == 1

    cleared = _body(registry.handle(state, f"/clear {CLEAR_CONFIRM_TOKEN} vault"))
    assert cleared["_status"] == 200
    assert cleared["data"]["deletedTasks"] == 1
    assert state.store.count() == 0
