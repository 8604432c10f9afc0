# src/punchcard/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import create_from_text, render_tasks
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str) -> str:
    """One REPL step: slash commands go to the registry, plain text creates a task."""
    reply = command_registry.handle(state, line)
    if reply is not None:
        return reply
    return create_from_text(state, line)


def run_console_loop(state: AppState) -> None:
    runner = state.require_runner()
    app_name = str(getattr(getattr(state, "settings", None), "app_name", "punchcard"))

    logger.info("Console connector started.")
    _print_ts(f"[{app_name}] Type a task name to add it, /help for commands, /exit to quit.\n")
    print(render_tasks(runner.snapshot()))

    reported_error = None

    while True:
        try:
            line = input("\n> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            print(render_tasks(runner.snapshot()))
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = handle_line(state, line)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        print(reply)
        if not line.lower().startswith(("/ls", "/list", "/help", "/h", "/?", "/status")):
            print(render_tasks(runner.snapshot()))

        # Save failures are not fatal; tell the user once per distinct error.
        try:
            err = runner.status().last_save_error
        except Exception:
            logger.debug("Status query failed.", exc_info=True)
            err = None
        if err is not None and err is not reported_error:
            _print_ts(f"[SAVE] Could not save tasks: {err}")
        reported_error = err

    logger.info("Console connector finished.")
