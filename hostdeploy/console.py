"""Operator-facing output: numbered steps, info lines, errors."""

from __future__ import annotations

import sys

PREFIX = "[deploy]"
STEP_COLOR = "\033[95m"
COLOR_RESET = "\033[0m"


class StepLog:
    def __init__(self, *, color: bool | None = None):
        self.step_number = 0
        self.color = sys.stdout.isatty() if color is None else color

    def step(self, message: str, *, icon: str = "🚀") -> None:
        self.step_number += 1
        line = f"{PREFIX} {icon} Step {self.step_number}: {message}"
        if self.color:
            line = f"{STEP_COLOR}{line}{COLOR_RESET}"
        print(line, flush=True)

    def info(self, message: str, *, icon: str = "ℹ️") -> None:
        print(f"{PREFIX} {icon} {message}", flush=True)

    def error(self, message: str) -> None:
        print(f"❌ {PREFIX} {message}", file=sys.stderr, flush=True)
