# src/punchcard/storage/persistence.py

from __future__ import annotations

"""
Persistence controller.

Decides WHEN the registry is written; the store decides HOW.

Rules:
- a save starts only if the registry is dirty, no save is in flight, and the
  cooldown after the last successful save has elapsed;
- starting a save clears `is_dirty`, sets `is_saving` and captures a deep copy;
- completion (ok or failed) clears `is_saving`; only success arms the cooldown;
- mutations during a save or cooldown just re-set `is_dirty`, so the next save
  carries the latest state.

I/O runs in a worker thread; results come back as Loaded/Saved events.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from ..core.messages import Loaded, Saved, Tick
from ..core.ports import Monotonic, TaskStore
from ..tasks.registry import TaskRegistry
from ..tasks.task_models import Task
from .errors import LoadError, SaveError, StoreFormatError, StoreMissingError

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_SECONDS = 2.0


class PersistenceController:
    def __init__(
        self,
        store: TaskStore,
        *,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        monotonic: Monotonic = time.monotonic,
    ) -> None:
        self.store = store
        self.min_interval = max(0.0, float(min_interval))
        self._monotonic = monotonic
        self._cooldown_until: float | None = None

    # ---- save scheduling ----
    def cooldown_remaining(self) -> float:
        if self._cooldown_until is None:
            return 0.0
        return max(0.0, self._cooldown_until - self._monotonic())

    def can_save(self, registry: TaskRegistry) -> bool:
        return registry.is_dirty and not registry.is_saving and self.cooldown_remaining() <= 0.0

    def begin(self, registry: TaskRegistry) -> list[Task] | None:
        """Return a snapshot to save, or None if no save should start now."""
        if not self.can_save(registry):
            return None
        return registry.begin_save()

    async def save(self, snapshot: list[Task]) -> Saved:
        try:
            await asyncio.to_thread(self.store.save, snapshot)
        except SaveError as e:
            logger.error("Save failed: %s", e)
            return Saved(error=e)
        logger.debug("Saved %d tasks.", len(snapshot))
        return Saved()

    def complete(self, registry: TaskRegistry, event: Saved) -> None:
        registry.finish_save()
        if event.ok:
            self._cooldown_until = self._monotonic() + self.min_interval

    def flush(self, registry: TaskRegistry) -> bool:
        """
        Synchronous final save, ignoring dirtiness and cooldown.

        Used at shutdown; the caller must make sure no save is in flight.
        """
        snapshot = registry.begin_save()
        try:
            self.store.save(snapshot)
        except SaveError:
            logger.exception("Final save failed.")
            registry.is_dirty = True
            return False
        finally:
            registry.finish_save()
        logger.info("Final save: %d tasks.", len(snapshot))
        return True

    # ---- load ----
    async def load(self) -> Loaded:
        try:
            tasks = await asyncio.to_thread(self.store.load)
        except StoreMissingError as e:
            logger.info("No task store yet (%s); starting empty.", e)
            return Loaded(error=e)
        except StoreFormatError as e:
            logger.warning("Task store is invalid (%s); starting empty.", e)
            return Loaded(error=e)
        except LoadError as e:
            logger.warning("Task store could not be loaded (%s); starting empty.", e)
            return Loaded(error=e)
        return Loaded(tasks=tasks)


async def run_autosave_ticker(
    post: Callable[[Tick], None],
    *,
    interval_seconds: float = 0.5,
) -> None:
    """
    Post a Tick every interval_seconds so saves deferred by the cooldown run
    without waiting for another mutation.

    To stop the ticker, cancel the coroutine/task.
    """
    sleep_s = max(0.05, float(interval_seconds))
    while True:
        await asyncio.sleep(sleep_s)
        post(Tick())
