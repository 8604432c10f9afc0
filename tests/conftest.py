# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from punchcard.storage.task_store import JsonTaskStore
from punchcard.tasks.registry import TaskRegistry

from .fakes import FakeClock, FakeMonotonic, RecordingStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the console.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the user's environment and data dir.
    """
    return SimpleNamespace(
        app_name="punchcard-test",
        log_level="DEBUG",
        log_to_file=False,
        data_dir=tmp_path,
        store_path=tmp_path / "tasks.json",
        save_min_interval=0.0,
        autosave_tick_seconds=0.05,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 9, 0, 0, tzinfo=UTC))


@pytest.fixture()
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def registry(clock: FakeClock) -> TaskRegistry:
    return TaskRegistry(clock=clock)


@pytest.fixture()
def json_store(tmp_path: Path) -> JsonTaskStore:
    return JsonTaskStore(tmp_path / "data" / "tasks.json")


@pytest.fixture()
def recording_store() -> RecordingStore:
    return RecordingStore()
