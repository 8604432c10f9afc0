# src/punchcard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the runtime loop in a background
thread, then runs the console REPL in the main thread. On exit the runtime
stops any running task and writes a final save before the process ends.
"""

from __future__ import annotations

import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.runtime import start_runtime_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)

READY_TIMEOUT_SECONDS = 10.0


def main() -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    log_dir = settings.data_dir if getattr(settings, "log_to_file", True) else None
    try:
        setup_logging(log_dir=log_dir, console_level=console_level)
    except OSError:
        # Unwritable data dir: keep console logging, the store will report its own errors.
        setup_logging(log_dir=None, console_level=console_level)

    logger.info("Starting %s (store=%s)...", settings.app_name, settings.store_path)

    state = create_initial_state(settings=settings)

    runner = start_runtime_in_background(state.runtime)
    if runner is None:
        logger.error("Could not start the runtime; exiting.")
        return 1
    state.runner = runner

    def _handle_sigterm(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_sigterm)
    except (ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM.
        pass

    try:
        if not runner.wait_ready(timeout=READY_TIMEOUT_SECONDS):
            logger.error("Tasks were not loaded within %.0fs.", READY_TIMEOUT_SECONDS)
            return 1
        run_console_loop(state)
    except KeyboardInterrupt:
        print()
    finally:
        runner.stop()
        runner.join()
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
