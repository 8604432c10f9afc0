# src/punchcard/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .runtime import Runtime, RuntimeRunner


@dataclass
class AppState:
    # Settings object (punchcard.config.Settings or a compatible namespace in tests).
    settings: object

    runtime: Runtime
    runner: RuntimeRunner | None = None

    def require_runner(self) -> RuntimeRunner:
        if self.runner is None:
            raise RuntimeError("Runtime is not running.")
        return self.runner
