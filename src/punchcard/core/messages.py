# src/punchcard/core/messages.py

"""
Messages flowing through the runtime queue.

Commands come from the UI collaborator; events are completions of
background I/O (load/save) and autosave ticks.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..storage.errors import LoadError, SaveError
from ..tasks.task_models import Task


# ---- commands ----
@dataclass(frozen=True, slots=True)
class CreateTask:
    text: str
    start: bool = False


@dataclass(frozen=True, slots=True)
class SetPendingInput:
    text: str


@dataclass(frozen=True, slots=True)
class SubmitPendingInput:
    start: bool = False


@dataclass(frozen=True, slots=True)
class RenameLive:
    task_id: str
    text: str


@dataclass(frozen=True, slots=True)
class BeginEdit:
    task_id: str


@dataclass(frozen=True, slots=True)
class CommitEdit:
    task_id: str


@dataclass(frozen=True, slots=True)
class CancelEdit:
    task_id: str


@dataclass(frozen=True, slots=True)
class DeleteTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class StartTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class StopTask:
    task_id: str


Command = (
    CreateTask
    | SetPendingInput
    | SubmitPendingInput
    | RenameLive
    | BeginEdit
    | CommitEdit
    | CancelEdit
    | DeleteTask
    | StartTask
    | StopTask
)


# ---- events ----
@dataclass(frozen=True, slots=True)
class Loaded:
    tasks: list[Task] = field(default_factory=list)
    error: LoadError | None = None


@dataclass(frozen=True, slots=True)
class Saved:
    error: SaveError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class Tick:
    pass


@dataclass(frozen=True, slots=True)
class Shutdown:
    pass


Event = Loaded | Saved | Tick | Shutdown
Message = Command | Event
