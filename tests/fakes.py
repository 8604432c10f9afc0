# tests/fakes.py

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable
from datetime import datetime, timedelta

from punchcard.storage.errors import SaveError, StoreMissingError
from punchcard.tasks.task_models import Task


class FakeClock:
    """Deterministic UTC clock; tests move time forward explicitly."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class RecordingStore:
    """
    In-memory TaskStore used for controller/runtime tests.

    - `initial` is returned by load() (None -> StoreMissingError, like a first run)
    - every save() is recorded as a deep copy
    - `fail_with` makes save() raise
    - `gate` (threading.Event) makes save() block until set, to hold a save in flight
    """

    def __init__(self, initial: list[Task] | None = None) -> None:
        self.initial = initial
        self.load_error: Exception | None = None
        self.saves: list[list[Task]] = []
        self.fail_with: SaveError | None = None
        self.gate: threading.Event | None = None

    def load(self) -> list[Task]:
        if self.load_error is not None:
            raise self.load_error
        if self.initial is None:
            raise StoreMissingError("no store")
        return copy.deepcopy(self.initial)

    def save(self, tasks: Iterable[Task]) -> None:
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.fail_with is not None:
            raise self.fail_with
        self.saves.append(copy.deepcopy(list(tasks)))

    @property
    def last(self) -> list[Task]:
        return self.saves[-1]
