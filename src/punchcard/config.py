# src/punchcard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time: every value has a default.
- The store lives in the platform's per-user data directory unless overridden.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "PUNCHCARD"
APP_DIR_NAME = "punchcard"
STORE_FILE_NAME = "tasks.json"

logger = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def user_data_dir(app_dir_name: str = APP_DIR_NAME) -> Path:
    """
    Per-user data directory for the platform.

    - Windows: %APPDATA%\\<app>
    - macOS:   ~/Library/Application Support/<app>
    - other:   $XDG_DATA_HOME/<app> or ~/.local/share/<app>

    Falls back to the current working directory if no home can be determined.
    """
    try:
        if sys.platform.startswith("win"):
            base = os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming"
            return Path(base) / app_dir_name
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / app_dir_name
        base = os.environ.get("XDG_DATA_HOME") or (Path.home() / ".local" / "share")
        return Path(base) / app_dir_name
    except (RuntimeError, KeyError, OSError):
        logger.warning("Cannot determine a home directory; using the working directory.")
        return Path.cwd()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_to_file: bool

    # ---- Local data paths ----
    data_dir: Path
    store_path: Path

    # ---- Persistence tuning ----
    save_min_interval: float
    autosave_tick_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "punchcard") or "punchcard"
        # Console level; the log file always gets DEBUG.
        log_level = _env(_k("LOG_LEVEL"), "WARNING")
        log_to_file = _env_bool(_k("LOG_TO_FILE"), True)

        data_dir = _env_path(_k("DATA_DIR"), user_data_dir())
        store_path = _env_path(_k("STORE_PATH"), data_dir / STORE_FILE_NAME)

        # Minimum gap between two saves (seconds); dirty signals in between are coalesced.
        save_min_interval = max(0.0, _env_float(_k("SAVE_MIN_INTERVAL"), 2.0))
        autosave_tick_seconds = max(0.05, _env_float(_k("AUTOSAVE_TICK"), 0.5))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_to_file=log_to_file,
            data_dir=data_dir,
            store_path=store_path,
            save_min_interval=save_min_interval,
            autosave_tick_seconds=autosave_tick_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
