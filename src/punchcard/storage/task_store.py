# src/punchcard/storage/task_store.py

"""
JSON task store.

One document holds the whole task list:

    {
      "version": 1,
      "tasks": [
        {
          "id": "9f1c...",
          "name": "fix pipeline",
          "tag": "infra",
          "intervals": [
            {"start": "2024-05-01T09:00:00+00:00", "end": "2024-05-01T10:30:00+00:00", "duration": 5400}
          ],
          "is_active": false
        }
      ]
    }

Writes go to a temp file in the same directory, then os.replace() publishes it,
so a crash mid-write leaves the previous store intact.

Older documents are accepted:
- a bare top-level list of task records,
- records without "id" (a fresh id is generated),
- records keeping intervals under "hours" with RFC 3339 "Z" timestamps
  (nanosecond fractions are cut to microseconds).

A task being edited is written under its last committed name.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from ..tasks.task_models import Interval, Task, new_task_id, parse_task_input, utc_now
from .errors import (
    DirectoryCreateError,
    SerializeError,
    StoreFormatError,
    StoreMissingError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
UNTITLED = "untitled"

_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


# -------------------- encoding --------------------
def _encode_ts(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    return ts.astimezone(UTC).isoformat()


def encode_task(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "name": task.pending_name if task.is_editing else task.name,
        "tag": task.tag,
        "intervals": [
            {
                "start": _encode_ts(iv.start),
                "end": _encode_ts(iv.end),
                "duration": int(iv.duration.total_seconds()),
            }
            for iv in task.intervals
        ],
        "is_active": task.is_active,
    }


def encode_document(tasks: Iterable[Task]) -> dict[str, Any]:
    return {"version": SCHEMA_VERSION, "tasks": [encode_task(t) for t in tasks]}


# -------------------- decoding --------------------
def _decode_ts(raw: Any, *, field_name: str) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise StoreFormatError(f"{field_name}: expected ISO timestamp, got {type(raw).__name__}")
    try:
        ts = datetime.fromisoformat(_LONG_FRACTION.sub(r"\1", raw, count=1))
    except ValueError as e:
        raise StoreFormatError(f"{field_name}: invalid timestamp {raw!r}") from e
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def _decode_interval(raw: Any) -> Interval:
    if not isinstance(raw, dict):
        raise StoreFormatError("interval record must be an object")
    start = _decode_ts(raw.get("start"), field_name="start")
    end = _decode_ts(raw.get("end"), field_name="end")

    duration_raw = raw.get("duration", 0)
    if isinstance(duration_raw, bool) or not isinstance(duration_raw, (int, float)):
        raise StoreFormatError("duration must be a number of seconds")

    if end is None:
        return Interval(start=start)
    return Interval(start=start, end=end, duration=timedelta(seconds=int(duration_raw)))


def _repair_blank_name(raw: dict[str, Any]) -> str:
    previous = raw.get("previous_name")
    if isinstance(previous, str):
        _, name = parse_task_input(previous)
        if name:
            logger.warning("Task %s: blank name restored from previous_name %r.", raw.get("id"), name)
            return name
    logger.warning("Task %s: blank name replaced with %r.", raw.get("id"), UNTITLED)
    return UNTITLED


def decode_task(raw: Any) -> Task:
    if not isinstance(raw, dict):
        raise StoreFormatError("task record must be an object")

    name = raw.get("name")
    if not isinstance(name, str):
        raise StoreFormatError("task record is missing a string 'name'")
    if not name.strip():
        name = _repair_blank_name(raw)

    tag = raw.get("tag")
    if tag is not None and not isinstance(tag, str):
        raise StoreFormatError("'tag' must be a string or null")

    task_id = raw.get("id")
    if task_id is None or task_id == "":
        task_id = new_task_id()
        logger.info("Task %r had no id; assigned %s.", name, task_id)
    elif not isinstance(task_id, str):
        task_id = str(task_id)

    intervals_raw = raw.get("intervals")
    if intervals_raw is None:
        intervals_raw = raw.get("hours", [])
    if not isinstance(intervals_raw, list):
        raise StoreFormatError("'intervals' must be a list")
    intervals = [_decode_interval(iv) for iv in intervals_raw]

    # Only the last interval may be open.
    for i, iv in enumerate(intervals[:-1]):
        if iv.is_open:
            end = iv.start or utc_now()
            logger.warning("Task %s: closing stray open interval #%d.", task_id, i)
            intervals[i] = iv.close(end)

    task = Task(name=name, tag=tag or None, id=task_id, intervals=intervals)

    stored_active = raw.get("is_active")
    if isinstance(stored_active, bool) and stored_active != task.is_active:
        logger.warning(
            "Task %s: stored is_active=%s disagrees with intervals; using intervals.",
            task_id,
            stored_active,
        )
    return task


def decode_document(data: Any, *, now: datetime | None = None) -> list[Task]:
    if isinstance(data, dict):
        records = data.get("tasks")
        if not isinstance(records, list):
            raise StoreFormatError("document has no 'tasks' list")
    elif isinstance(data, list):
        records = data
    else:
        raise StoreFormatError("document must be an object or a list")

    tasks = [decode_task(r) for r in records]

    # At most one active task: the first keeps running, the rest are closed now.
    seen_active = False
    now = now or utc_now()
    for task in tasks:
        if not task.is_active:
            continue
        if seen_active:
            logger.warning("Task %s: more than one active task stored; stopping it.", task.id)
            task.stop(now)
        seen_active = True
    return tasks


# -------------------- store --------------------
class JsonTaskStore:
    """
    File-backed task store.

    Thread-safety:
    - no shared state besides the path; one writer (the persistence controller) at a time.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[Task]:
        if not self.path.exists():
            raise StoreMissingError(f"No task store at {self.path}", path=self.path)
        try:
            raw = self.path.read_text("utf-8")
        except FileNotFoundError as e:
            raise StoreMissingError(f"No task store at {self.path}", path=self.path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StoreFormatError(f"Unreadable task store {self.path}: {e}", path=self.path) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreFormatError(f"Invalid JSON in {self.path}: {e}", path=self.path) from e

        try:
            tasks = decode_document(data)
        except StoreFormatError as e:
            e.path = self.path
            raise

        logger.info("Loaded %d tasks from %s", len(tasks), self.path)
        return tasks

    def save(self, tasks: Iterable[Task]) -> None:
        try:
            payload = json.dumps(encode_document(tasks), ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise SerializeError(f"Failed to serialize tasks: {e}", path=self.path) from e

        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(f"Cannot create {directory}: {e}", path=self.path) from e

        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.remove(tmp_name)
            raise StoreWriteError(f"Failed to write {self.path}: {e}", path=self.path) from e

        with contextlib.suppress(OSError):
            # Best-effort: work logs are personal, keep the file private on disk.
            os.chmod(self.path, 0o600)

        logger.debug("Saved task store to %s", self.path)
