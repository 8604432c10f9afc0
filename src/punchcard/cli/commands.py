# src/punchcard/cli/commands.py

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..core.messages import (
    BeginEdit,
    CancelEdit,
    CommitEdit,
    CreateTask,
    DeleteTask,
    RenameLive,
    SetPendingInput,
    StartTask,
    StopTask,
    SubmitPendingInput,
)
from ..core.state import AppState
from ..tasks.registry import TaskView
from ..tasks.task_models import EditState

CommandHandler = Callable[[AppState, list[str]], str]


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  (plain text) - create a task from the text, e.g. infra:fix pipeline")
        return "\n".join(lines)


registry = CommandRegistry()


# -------------------- rendering --------------------
def render_tasks(views: Sequence[TaskView]) -> str:
    if not views:
        return "(no tasks yet - type a name to add one, e.g. infra:fix pipeline)"
    width = max(len(v.display_name) for v in views)
    width = min(max(width, 12), 48)
    lines = []
    for v in views:
        marker = ">" if v.is_active else " "
        name = v.display_name if len(v.display_name) <= width else v.display_name[: width - 1] + "~"
        suffix = ""
        if v.is_active:
            suffix += "  running"
        if v.edit_state == EditState.EDITING:
            suffix += "  (editing)"
        lines.append(f"{marker}{v.position + 1:>3}. {name:<{width}}  {v.duration}{suffix}")
    return "\n".join(lines)


# -------------------- helpers --------------------
def _resolve(state: AppState, raw: str) -> TaskView | str:
    """Map a 1-based task number to its current row; returns an error string on failure."""
    token = raw.rstrip(".")
    if not token.isdigit():
        return f"Invalid task number: {raw}"
    views = state.require_runner().snapshot()
    idx = int(token) - 1
    if idx < 0 or idx >= len(views):
        return f"No task #{token}."
    return views[idx]


def _editing(state: AppState) -> TaskView | None:
    for v in state.require_runner().snapshot():
        if v.edit_state == EditState.EDITING:
            return v
    return None


def create_from_text(state: AppState, text: str, *, start: bool = False) -> str:
    """Type text into the new-task buffer and submit it."""
    runner = state.require_runner()
    runner.call(SetPendingInput(text))
    if not runner.call(SubmitPendingInput(start=start)):
        return "Task name required."
    return "Task added and started." if start else "Task added."


# -------------------- handlers --------------------
def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_ls(state: AppState, args: list[str]) -> str:
    return render_tasks(state.require_runner().snapshot())


def cmd_status(state: AppState, args: list[str]) -> str:
    st = state.require_runner().status()
    store_path = getattr(state.settings, "store_path", "?")
    lines = [
        "Status:",
        f"  Store: {store_path}",
        f"  Loaded: {'yes' if st.loaded else 'no'}"
        + (f" ({type(st.load_error).__name__})" if st.load_error else ""),
        f"  Unsaved changes: {'yes' if st.is_dirty else 'no'}",
        f"  Saving: {'yes' if st.is_saving else 'no'}",
        f"  Saves this session: {st.saves_completed}",
    ]
    if st.last_save_error is not None:
        lines.append(f"  Last save error: {st.last_save_error}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add [tag:]name"
    return create_from_text(state, " ".join(args))


def cmd_run(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /run [tag:]name"
    runner = state.require_runner()
    if not runner.call(CreateTask(" ".join(args), start=True)):
        return "Task name required."
    return "Task added and started."


def cmd_start(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /start N"
    view = _resolve(state, args[0])
    if isinstance(view, str):
        return view
    if view.is_active:
        return f"Task #{view.position + 1} is already running."
    state.require_runner().call(StartTask(view.id))
    return f"Started #{view.position + 1}: {view.display_name}"


def cmd_stop(state: AppState, args: list[str]) -> str:
    """
    /stop      -> stop whichever task is running
    /stop N    -> stop task N
    """
    if len(args) > 1:
        return "Usage: /stop [N]"
    if args:
        view = _resolve(state, args[0])
        if isinstance(view, str):
            return view
    else:
        active = [v for v in state.require_runner().snapshot() if v.is_active]
        if not active:
            return "No task is running."
        view = active[0]
    if not state.require_runner().call(StopTask(view.id)):
        return f"Task #{view.position + 1} is not running."
    return f"Stopped #{view.position + 1}: {view.display_name}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /edit N"
    view = _resolve(state, args[0])
    if isinstance(view, str):
        return view
    state.require_runner().call(BeginEdit(view.id))
    return f'Editing #{view.position + 1}: "{view.name}". Use /name <text>, then /commit or /cancel.'


def cmd_name(state: AppState, args: list[str]) -> str:
    view = _editing(state)
    if view is None:
        return "No task is being edited. Use /edit N first."
    text = " ".join(args)
    state.require_runner().call(RenameLive(view.id, text))
    return f'Name is now "{text}" (not committed).'


def cmd_commit(state: AppState, args: list[str]) -> str:
    view = _editing(state)
    if view is None:
        return "No task is being edited."
    if not state.require_runner().call(CommitEdit(view.id)):
        return "Name cannot be empty. Use /name <text> or /cancel."
    return "Saved new name."


def cmd_cancel(state: AppState, args: list[str]) -> str:
    view = _editing(state)
    if view is None:
        return "No task is being edited."
    state.require_runner().call(CancelEdit(view.id))
    return "Edit cancelled."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /rm N"
    view = _resolve(state, args[0])
    if isinstance(view, str):
        return view
    state.require_runner().call(DeleteTask(view.id))
    return f"Task #{view.position + 1} removed."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("ls", cmd_ls, help_text="List tasks with their totals.", aliases=["list"])
registry.register("status", cmd_status, help_text="Show store path and save state.")
registry.register("add", cmd_add, help_text="Add a task: /add [tag:]name.")
registry.register("run", cmd_run, help_text="Add a task and start it: /run [tag:]name.")
registry.register("start", cmd_start, help_text="Start timing task N (stops any other).")
registry.register("stop", cmd_stop, help_text="Stop the running task, or task N.")
registry.register("edit", cmd_edit, help_text="Begin renaming task N.")
registry.register("name", cmd_name, help_text="Set the live name of the task being edited.")
registry.register("commit", cmd_commit, help_text="Keep the edited name (tag:name re-parsed).")
registry.register("cancel", cmd_cancel, help_text="Discard the edit and restore the name.")
registry.register("rm", cmd_rm, help_text="Delete task N.", aliases=["delete"])
