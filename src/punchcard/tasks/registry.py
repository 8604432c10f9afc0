# src/punchcard/tasks/registry.py

"""
Task registry: the single owner of all Task/Interval state.

Every mutation goes through one of the command methods below, so the two
registry-wide invariants are enforced here and nowhere else:
- at most one task is active (has an open interval),
- at most one task is in EDITING.

Commands never raise on invalid input: they log and return a falsy value.
Successful mutations mark the registry dirty for the persistence controller.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from ..core.ports import Clock
from .task_models import EditState, Task, format_duration, parse_task_input, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskView:
    """Read-only row handed to the UI for rendering."""

    id: str
    position: int
    display_name: str
    name: str
    tag: str | None
    duration: str
    total_seconds: int
    is_active: bool
    edit_state: EditState


class TaskRegistry:
    def __init__(self, tasks: Iterable[Task] | None = None, *, clock: Clock = utc_now) -> None:
        self._tasks: list[Task] = list(tasks or [])
        self._clock = clock

        # UI-facing entry buffer for the "new task" field; not persisted.
        self.pending_input: str = ""

        # Persistence bookkeeping.
        self.is_dirty: bool = False
        self.is_saving: bool = False

    # -------------------- queries --------------------
    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(tuple(self._tasks))

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def task_at(self, index: int) -> Task | None:
        if 0 <= index < len(self._tasks):
            return self._tasks[index]
        return None

    def active_task(self) -> Task | None:
        for task in self._tasks:
            if task.is_active:
                return task
        return None

    def editing_task(self) -> Task | None:
        for task in self._tasks:
            if task.is_editing:
                return task
        return None

    def snapshot(self, now: datetime | None = None) -> tuple[TaskView, ...]:
        """
        Rows in creation order.

        The displayed duration includes the live elapsed time of the open
        interval, computed against `now` (defaults to the registry clock).
        """
        now = now or self._clock()
        views: list[TaskView] = []
        for i, task in enumerate(self._tasks):
            total = task.total_duration(now)
            views.append(
                TaskView(
                    id=task.id,
                    position=i,
                    display_name=task.display_name,
                    name=task.name,
                    tag=task.tag,
                    duration=format_duration(total),
                    total_seconds=int(total.total_seconds()),
                    is_active=task.is_active,
                    edit_state=task.edit_state,
                )
            )
        return tuple(views)

    # -------------------- commands --------------------
    def create(self, text: str, *, start: bool = False) -> Task | None:
        tag, name = parse_task_input(text)
        if not name:
            logger.debug("Create rejected: empty name (input=%r).", text)
            return None
        task = Task(name=name, tag=tag)
        self._tasks.append(task)
        if start:
            self._start(task)
        self._touch()
        logger.info("Created task %s (%s).", task.id, task.display_name)
        return task

    def set_pending_input(self, text: str) -> None:
        self.pending_input = text

    def submit_pending_input(self, *, start: bool = False) -> Task | None:
        task = self.create(self.pending_input, start=start)
        if task is not None:
            self.pending_input = ""
        return task

    def start(self, task_id: str) -> bool:
        task = self._require(task_id, "start")
        if task is None:
            return False
        if task.is_active:
            logger.info("Task %s already active; start ignored.", task.id)
            return False
        self._start(task)
        self._touch()
        return True

    def stop(self, task_id: str) -> bool:
        task = self._require(task_id, "stop")
        if task is None:
            return False
        if not task.stop(self._clock()):
            return False
        self._touch()
        logger.info("Stopped task %s.", task.id)
        return True

    def stop_all(self) -> int:
        """Stop every active task. Returns how many were stopped."""
        now = self._clock()
        stopped = 0
        for task in self._tasks:
            if task.stop(now):
                stopped += 1
        if stopped:
            self._touch()
        return stopped

    def begin_edit(self, task_id: str) -> bool:
        task = self._require(task_id, "begin_edit")
        if task is None:
            return False
        for other in self._tasks:
            if other is not task and other.is_editing:
                other.cancel_edit()
        task.begin_edit()
        self._touch()
        return True

    def rename_live(self, task_id: str, text: str) -> bool:
        task = self._require(task_id, "rename_live")
        if task is None:
            return False
        if not task.edit_name(text):
            logger.debug("Rename rejected: task %s is not being edited.", task.id)
            return False
        self._touch()
        return True

    def commit_edit(self, task_id: str) -> bool:
        task = self._require(task_id, "commit_edit")
        if task is None:
            return False
        if not task.commit_edit():
            logger.debug("Commit rejected for task %s (state=%s, name=%r).", task.id, task.edit_state, task.name)
            return False
        self._touch()
        return True

    def cancel_edit(self, task_id: str) -> bool:
        task = self._require(task_id, "cancel_edit")
        if task is None:
            return False
        task.cancel_edit()
        self._touch()
        return True

    def delete(self, task_id: str) -> bool:
        task = self._require(task_id, "delete")
        if task is None:
            return False
        self._tasks.remove(task)
        self._touch()
        logger.info("Deleted task %s (%s).", task.id, task.display_name)
        return True

    # -------------------- persistence hooks --------------------
    def replace_tasks(self, tasks: Iterable[Task]) -> None:
        """Install tasks loaded from the store. Does not mark dirty."""
        self._tasks = list(tasks)

    def begin_save(self) -> list[Task]:
        """Capture a deep-copy snapshot and flip dirty -> saving."""
        self.is_dirty = False
        self.is_saving = True
        return copy.deepcopy(self._tasks)

    def finish_save(self) -> None:
        self.is_saving = False

    # -------------------- internals --------------------
    def _start(self, task: Task) -> None:
        now = self._clock()
        for other in self._tasks:
            if other is not task and other.is_active:
                other.stop(now)
                logger.info("Stopped task %s (another task started).", other.id)
        task.start(now)
        logger.info("Started task %s.", task.id)

    def _require(self, task_id: str, action: str) -> Task | None:
        task = self.get(task_id)
        if task is None:
            logger.warning("%s: unknown task id %s", action, task_id)
        return task

    def _touch(self) -> None:
        self.is_dirty = True
