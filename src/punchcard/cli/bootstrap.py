# src/punchcard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local data directory exists,
- wires the JSON store, persistence controller, registry and runtime into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.runtime import Runtime
from ..core.state import AppState
from ..storage.persistence import PersistenceController
from ..storage.task_store import JsonTaskStore
from ..tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    for d in (Path(settings.data_dir), Path(settings.store_path).parent):
        try:
            d.mkdir(parents=True, exist_ok=True)
        except OSError:
            # The store reports DirectoryCreateError on save; don't abort startup here.
            logger.warning("Cannot create %s", d, exc_info=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = JsonTaskStore(settings.store_path)
    controller = PersistenceController(store, min_interval=settings.save_min_interval)
    runtime = Runtime(
        TaskRegistry(),
        controller,
        autosave_tick_seconds=settings.autosave_tick_seconds,
    )
    logger.debug("Task store: %s", store.path)
    return AppState(settings=settings, runtime=runtime)
