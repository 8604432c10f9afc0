# src/punchcard/tasks/task_models.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum

logger = logging.getLogger(__name__)

ZERO = timedelta(0)


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_task_id() -> str:
    return uuid.uuid4().hex


class EditState(StrEnum):
    """Whether the task's name field is open for modification."""

    IDLE = "idle"
    EDITING = "editing"


def parse_task_input(text: str) -> tuple[str | None, str]:
    """
    Split "tag:name" input on the first colon.

    - "infra:fix pipeline" -> ("infra", "fix pipeline")
    - "fix pipeline"       -> (None, "fix pipeline")
    - " infra : fix"       -> (" infra ", "fix")  (the tag is kept as typed)
    - ":fix pipeline"      -> (None, ":fix pipeline")  (empty tag is not a tag)
    """
    head, sep, rest = text.partition(":")
    if sep and head:
        return head, rest.strip()
    return None, text.strip()


def format_duration(total: timedelta) -> str:
    """HH:MM, seconds truncated. Hours are not capped at two digits."""
    total_minutes = max(int(total.total_seconds()), 0) // 60
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


@dataclass(frozen=True, slots=True)
class Interval:
    """
    One contiguous start -> stop timing span.

    `end is None` means the interval is still open. Closing produces a new
    Interval; a closed Interval is never modified.
    """

    start: datetime | None
    end: datetime | None = None
    duration: timedelta = ZERO

    @classmethod
    def open_at(cls, start: datetime) -> Interval:
        return cls(start=start)

    @property
    def is_open(self) -> bool:
        return self.end is None

    def close(self, end: datetime) -> Interval:
        if self.end is not None:
            raise ValueError("Interval is already closed.")
        duration = end - self.start if self.start is not None else ZERO
        return replace(self, end=end, duration=max(duration, ZERO))

    def elapsed(self, now: datetime) -> timedelta:
        """Closed: stored duration. Open: live delta up to `now`."""
        if self.end is not None:
            return self.duration
        if self.start is None:
            return ZERO
        return max(now - self.start, ZERO)


@dataclass(slots=True)
class Task:
    name: str
    tag: str | None = None
    id: str = field(default_factory=new_task_id)
    intervals: list[Interval] = field(default_factory=list)

    # Transient (never persisted).
    pending_name: str = ""
    edit_state: EditState = EditState.IDLE

    def __post_init__(self) -> None:
        if not self.pending_name:
            self.pending_name = self.name

    @property
    def is_active(self) -> bool:
        return bool(self.intervals) and self.intervals[-1].is_open

    @property
    def is_editing(self) -> bool:
        return self.edit_state == EditState.EDITING

    @property
    def display_name(self) -> str:
        return f"{self.tag}:{self.name}" if self.tag else self.name

    def open_interval(self) -> Interval | None:
        return self.intervals[-1] if self.is_active else None

    # ---- timer ----
    def start(self, now: datetime) -> bool:
        if self.is_active:
            logger.info("Task %s already active.", self.id)
            return False
        self.intervals.append(Interval.open_at(now))
        return True

    def stop(self, now: datetime) -> bool:
        if not self.is_active:
            logger.debug("Task %s not active; stop ignored.", self.id)
            return False
        self.intervals[-1] = self.intervals[-1].close(now)
        return True

    def total_duration(self, now: datetime | None = None) -> timedelta:
        """
        Sum of closed interval durations.

        If `now` is given, the open interval (if any) contributes its live
        elapsed time as well.
        """
        total = ZERO
        for interval in self.intervals:
            if interval.is_open:
                if now is not None:
                    total += interval.elapsed(now)
            else:
                total += interval.duration
        return total

    # ---- editing ----
    def begin_edit(self) -> None:
        self.edit_state = EditState.EDITING

    def edit_name(self, text: str) -> bool:
        if not self.is_editing:
            return False
        self.name = text
        return True

    def commit_edit(self) -> bool:
        """
        Re-parse the live name with the "tag:name" convention.

        A tag prefix replaces the current tag; a plain name keeps it.
        An empty name is rejected and the task stays in EDITING.
        """
        if not self.is_editing:
            return False
        tag, name = parse_task_input(self.name)
        if not name:
            return False
        if tag is not None:
            self.tag = tag
        self.name = name
        self.pending_name = name
        self.edit_state = EditState.IDLE
        return True

    def cancel_edit(self) -> None:
        self.name = self.pending_name
        self.edit_state = EditState.IDLE
