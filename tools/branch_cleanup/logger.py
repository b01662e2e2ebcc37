from __future__ import annotations

import datetime as _dt
from pathlib import Path
from typing import Optional


def utcnow() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class Logger:
    """Simple console/file logger."""

    def __init__(self, log_file: Optional[Path] = None) -> None:
        self.log_file = log_file
        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def _emit(self, level: str, message: str) -> None:
        formatted = f"[{utcnow()}] [{level}] {message}"
        print(formatted)
        if self.log_file is not None:
            with self.log_file.open("a", encoding="utf-8") as handle:
                handle.write(formatted + "\n")

    def info(self, message: str) -> None:
        self._emit("INFO", message)

    def warn(self, message: str) -> None:
        self._emit("WARN", message)

    def error(self, message: str) -> None:
        self._emit("ERROR", message)
