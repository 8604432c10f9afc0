# src/punchcard/core/runtime.py

"""
Runtime: the single logical owner of the task registry.

Everything that touches the registry runs on one asyncio event loop:
- UI commands (posted to the queue, or executed via run_coroutine_threadsafe),
- completion events from background I/O (Loaded / Saved),
- autosave ticks.

Load/save run in worker threads and only ever see a deep-copied snapshot.
The console REPL is blocking (input()), so the loop lives in a background
thread and the console talks to it through RuntimeRunner.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..storage.errors import LoadError, SaveError
from ..storage.persistence import PersistenceController, run_autosave_ticker
from ..tasks.registry import TaskRegistry, TaskView
from ..tasks.task_models import Task
from .messages import (
    BeginEdit,
    CancelEdit,
    Command,
    CommitEdit,
    CreateTask,
    DeleteTask,
    Loaded,
    Message,
    RenameLive,
    Saved,
    SetPendingInput,
    Shutdown,
    StartTask,
    StopTask,
    SubmitPendingInput,
    Tick,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RuntimeStatus:
    loaded: bool
    load_error: LoadError | None
    is_dirty: bool
    is_saving: bool
    saves_completed: int
    last_save_error: SaveError | None
    active_task_id: str | None
    editing_task_id: str | None
    pending_input: str


class Runtime:
    def __init__(
        self,
        registry: TaskRegistry,
        controller: PersistenceController,
        *,
        autosave_tick_seconds: float = 0.5,
    ) -> None:
        self.registry = registry
        self.controller = controller
        self.autosave_tick_seconds = autosave_tick_seconds

        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._in_flight: set[asyncio.Task[None]] = set()
        self._closing = False

        self.ready = threading.Event()
        self.loaded = False
        self.load_error: LoadError | None = None
        self.last_save_error: SaveError | None = None
        self.saves_completed = 0

    # -------------------- message intake --------------------
    def post(self, message: Message) -> None:
        """Enqueue a message. Must be called on the runtime's loop thread."""
        self._queue.put_nowait(message)

    def dispatch(self, message: Message) -> bool:
        """
        Apply one message synchronously.

        Returns True if a command was accepted (events always return True).
        After every message the persistence controller gets a chance to start a save.
        """
        if isinstance(message, Loaded):
            self._on_loaded(message)
            accepted = True
        elif isinstance(message, Saved):
            self._on_saved(message)
            accepted = True
        elif isinstance(message, Tick):
            accepted = True
        elif isinstance(message, Shutdown):
            logger.debug("Shutdown is handled by run(); ignoring in dispatch.")
            return True
        elif not self.loaded:
            logger.warning("Ignoring %s: tasks are not loaded yet.", type(message).__name__)
            return False
        else:
            accepted = self._apply(message)

        self._maybe_save()
        return accepted

    async def execute(self, command: Command) -> bool:
        return self.dispatch(command)

    async def query_snapshot(self) -> tuple[TaskView, ...]:
        return self.registry.snapshot()

    async def query_status(self) -> RuntimeStatus:
        active = self.registry.active_task()
        editing = self.registry.editing_task()
        return RuntimeStatus(
            loaded=self.loaded,
            load_error=self.load_error,
            is_dirty=self.registry.is_dirty,
            is_saving=self.registry.is_saving,
            saves_completed=self.saves_completed,
            last_save_error=self.last_save_error,
            active_task_id=active.id if active else None,
            editing_task_id=editing.id if editing else None,
            pending_input=self.registry.pending_input,
        )

    # -------------------- command handling --------------------
    def _apply(self, command: Command) -> bool:
        reg = self.registry
        if isinstance(command, CreateTask):
            return reg.create(command.text, start=command.start) is not None
        if isinstance(command, SetPendingInput):
            reg.set_pending_input(command.text)
            return True
        if isinstance(command, SubmitPendingInput):
            return reg.submit_pending_input(start=command.start) is not None
        if isinstance(command, RenameLive):
            return reg.rename_live(command.task_id, command.text)
        if isinstance(command, BeginEdit):
            return reg.begin_edit(command.task_id)
        if isinstance(command, CommitEdit):
            return reg.commit_edit(command.task_id)
        if isinstance(command, CancelEdit):
            return reg.cancel_edit(command.task_id)
        if isinstance(command, DeleteTask):
            return reg.delete(command.task_id)
        if isinstance(command, StartTask):
            return reg.start(command.task_id)
        if isinstance(command, StopTask):
            return reg.stop(command.task_id)

        logger.warning("Unknown command: %r", command)
        return False

    # -------------------- events --------------------
    def _on_loaded(self, event: Loaded) -> None:
        if self.loaded:
            logger.warning("Duplicate Loaded event ignored.")
            return
        self.registry.replace_tasks(event.tasks)
        self.load_error = event.error
        self.loaded = True
        self.ready.set()
        logger.info("Runtime ready with %d tasks.", len(self.registry))

    def _on_saved(self, event: Saved) -> None:
        self.controller.complete(self.registry, event)
        if event.ok:
            self.saves_completed += 1
            self.last_save_error = None
        else:
            self.last_save_error = event.error

    # -------------------- background I/O --------------------
    def _maybe_save(self) -> None:
        if self._closing or not self.loaded:
            return
        snapshot = self.controller.begin(self.registry)
        if snapshot is None:
            return
        self._spawn(self._save(snapshot))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _save(self, snapshot: list[Task]) -> None:
        try:
            event = await self.controller.save(snapshot)
        except Exception as e:
            logger.exception("Unexpected error while saving.")
            event = Saved(error=SaveError(f"Unexpected save failure: {e}"))
        self.post(event)

    async def _load(self) -> None:
        try:
            event = await self.controller.load()
        except Exception as e:
            logger.exception("Unexpected error while loading.")
            event = Loaded(error=LoadError(f"Unexpected load failure: {e}"))
        self.post(event)

    # -------------------- lifecycle --------------------
    async def run(self) -> None:
        """
        Main loop: load, then process messages until Shutdown.

        On exit, any active task is stopped and one final save is written.
        """
        self._spawn(self._load())
        ticker = asyncio.create_task(
            run_autosave_ticker(self.post, interval_seconds=self.autosave_tick_seconds)
        )
        try:
            while True:
                message = await self._queue.get()
                if isinstance(message, Shutdown):
                    logger.info("Runtime shutdown requested.")
                    break
                try:
                    self.dispatch(message)
                except Exception:
                    logger.exception("Dispatch failed for %r", message)
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            await self.shutdown()

    async def drain(self) -> None:
        """Wait for in-flight load/save work and apply every message already queued."""
        while self._in_flight or not self._queue.empty():
            if self._in_flight:
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            while not self._queue.empty():
                message = self._queue.get_nowait()
                if isinstance(message, Shutdown):
                    continue
                self.dispatch(message)

    async def shutdown(self) -> None:
        """Wait for in-flight I/O, stop the active task, write a final save."""
        self._closing = True
        await self.drain()

        if not self.loaded:
            logger.warning("Shutting down before tasks were loaded; skipping final save.")
            return

        stopped = self.registry.stop_all()
        if stopped:
            logger.info("Stopped %d active task(s) before exit.", stopped)
        self.controller.flush(self.registry)


@dataclass(slots=True)
class RuntimeRunner:
    """Handle used by blocking callers (console thread) to talk to the runtime loop."""

    runtime: Runtime
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop

    def post(self, message: Message) -> None:
        self.loop.call_soon_threadsafe(self.runtime.post, message)

    def call(self, command: Command, timeout: float | None = 5.0) -> bool:
        fut = asyncio.run_coroutine_threadsafe(self.runtime.execute(command), self.loop)
        return fut.result(timeout=timeout)

    def snapshot(self, timeout: float | None = 5.0) -> tuple[TaskView, ...]:
        fut = asyncio.run_coroutine_threadsafe(self.runtime.query_snapshot(), self.loop)
        return fut.result(timeout=timeout)

    def status(self, timeout: float | None = 5.0) -> RuntimeStatus:
        fut = asyncio.run_coroutine_threadsafe(self.runtime.query_status(), self.loop)
        return fut.result(timeout=timeout)

    def wait_ready(self, timeout: float | None = None) -> bool:
        return self.runtime.ready.wait(timeout=timeout)

    def stop(self) -> None:
        try:
            self.post(Shutdown())
        except RuntimeError:
            logger.debug("Runtime loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_runtime_in_background(runtime: Runtime) -> RuntimeRunner | None:
    """
    Start the runtime loop in a background thread.

    The console REPL is blocking (input()) and stays on the main thread;
    the runtime wants its own event loop.
    """
    started = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        holder["loop"] = loop
        started.set()

        try:
            loop.run_until_complete(runtime.run())
        except Exception:
            logger.exception("Runtime loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_default_executor())
            with contextlib.suppress(Exception):
                loop.close()

    # Not a daemon: the final save must finish before the process exits.
    t = threading.Thread(target=runner, name="punchcard-runtime", daemon=False)
    t.start()

    started.wait(timeout=5.0)
    loop = holder.get("loop")
    if not isinstance(loop, asyncio.AbstractEventLoop):
        logger.error("Runtime thread did not initialize properly.")
        return None

    logger.info("Runtime background thread started.")
    return RuntimeRunner(runtime=runtime, thread=t, loop=loop)
