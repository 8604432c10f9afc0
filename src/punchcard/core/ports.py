# src/punchcard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The runtime and the persistence controller depend on these Protocols instead of
concrete implementations, so the JSON store can be swapped for an in-memory
fake in tests.
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Protocol

from ..tasks.task_models import Task

Clock = Callable[[], datetime]
# Returns a timezone-aware UTC "now".

Monotonic = Callable[[], float]
# Returns seconds from a monotonic clock (time.monotonic-compatible).


class TaskStore(Protocol):
    """
    Durable store for the full task list.

    - load() raises StoreMissingError on first run, StoreFormatError on bad content.
    - save() raises a SaveError subclass; it must never leave a half-written store.
    """

    def load(self) -> list[Task]: ...

    def save(self, tasks: Iterable[Task]) -> None: ...
