# src/punchcard/storage/errors.py

from __future__ import annotations

from pathlib import Path


class StoreError(Exception):
    """Base class for task store failures."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class LoadError(StoreError):
    pass


class StoreMissingError(LoadError):
    """No store yet (first run)."""


class StoreFormatError(LoadError):
    """Store exists but is not a valid task document."""


class SaveError(StoreError):
    pass


class DirectoryCreateError(SaveError):
    pass


class StoreWriteError(SaveError):
    pass


class SerializeError(SaveError):
    pass
