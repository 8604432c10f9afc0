# tests/test_commands.py

from __future__ import annotations

import json
from collections.abc import Iterator
from types import SimpleNamespace

import pytest

from punchcard.cli.bootstrap import create_initial_state
from punchcard.cli.commands import CommandRegistry, render_tasks
from punchcard.connectors.console_connector import handle_line
from punchcard.core.runtime import start_runtime_in_background
from punchcard.core.state import AppState


@pytest.fixture()
def live_state(settings: SimpleNamespace) -> Iterator[AppState]:
    """AppState with a real runtime thread and a JSON store under tmp_path."""
    state = create_initial_state(settings=settings)
    runner = start_runtime_in_background(state.runtime)
    assert runner is not None
    state.runner = runner
    assert runner.wait_ready(timeout=5.0)
    yield state
    runner.stop()
    runner.join(timeout=10.0)


def test_command_registry_routes_and_aliases(live_state: AppState) -> None:
    reg = CommandRegistry()
    called = {"n": 0}

    def handler(state, args):
        called["n"] += 1
        return f"got {args}"

    reg.register("ping", handler, "ping", aliases=["p"])

    assert reg.handle(live_state, "/ping a b") == "got ['a', 'b']"
    assert reg.handle(live_state, "/P") == "got []"
    assert called["n"] == 2
    assert reg.handle(live_state, "hello") is None
    assert "Unknown command" in (reg.handle(live_state, "/nope") or "")


def test_console_flow_end_to_end(live_state: AppState, settings: SimpleNamespace) -> None:
    runner = live_state.require_runner()

    assert handle_line(live_state, "infra:fix pipeline") == "Task added."
    assert handle_line(live_state, "   ") == "Task name required."
    assert handle_line(live_state, "/start 1").startswith("Started #1")
    assert "already running" in handle_line(live_state, "/start 1")

    assert handle_line(live_state, "/run docs:write README") == "Task added and started."
    rows = runner.snapshot()
    assert [r.display_name for r in rows] == ["infra:fix pipeline", "docs:write README"]
    assert [r.is_active for r in rows] == [False, True]

    assert handle_line(live_state, "/edit 1").startswith("Editing #1")
    handle_line(live_state, "/name")
    assert "cannot be empty" in handle_line(live_state, "/commit")
    handle_line(live_state, "/name ops:repair pipeline")
    assert handle_line(live_state, "/commit") == "Saved new name."
    assert runner.snapshot()[0].display_name == "ops:repair pipeline"

    assert handle_line(live_state, "/stop").startswith("Stopped #2")
    assert handle_line(live_state, "/stop") == "No task is running."
    assert handle_line(live_state, "/rm 9") == "No task #9."
    assert handle_line(live_state, "/rm x") == "Invalid task number: x"
    assert handle_line(live_state, "/rm 2") == "Task #2 removed."

    assert "ops:repair pipeline" in render_tasks(runner.snapshot())
    assert "Store:" in handle_line(live_state, "/status")

    handle_line(live_state, "/start 1")
    runner.stop()
    runner.join(timeout=10.0)

    doc = json.loads(settings.store_path.read_text("utf-8"))
    assert [(t["tag"], t["name"]) for t in doc["tasks"]] == [("ops", "repair pipeline")]
    assert doc["tasks"][0]["is_active"] is False
    assert all(iv["end"] is not None for iv in doc["tasks"][0]["intervals"])


def test_render_tasks_marks_running_and_editing(live_state: AppState) -> None:
    handle_line(live_state, "a")
    handle_line(live_state, "/run b")
    handle_line(live_state, "/edit 1")
    out = render_tasks(live_state.require_runner().snapshot()).splitlines()
    assert out[0].startswith("   1. a")
    assert out[0].endswith("(editing)")
    assert out[1].startswith(">  2. b")
    assert "running" in out[1]
