"""Leveled console logger backed by rich and the CLI log file."""

from pathlib import Path
from threading import Lock
from typing import Any

from rich.console import Console
from rich.markup import escape

from ui.log_utils import CLI_LOG_FILE, write_cli_log

_LEVEL_STYLES = {
    "INFO": "green",
    "WARN": "yellow",
    "ERROR": "red",
}


class ConsoleLogger:
    """Print leveled messages to the terminal and mirror them to the log file."""

    def __init__(self, console: Console | None = None, log_file: Path = CLI_LOG_FILE):
        self.console = console or Console(stderr=True)
        self.log_file = log_file
        self._lock = Lock()

    def info(self, message: str, **extra: Any) -> None:
        self._emit("INFO", message, extra)

    def warn(self, message: str, **extra: Any) -> None:
        self._emit("WARN", message, extra)

    def error(self, message: str, **extra: Any) -> None:
        self._emit("ERROR", message, extra)

    def _emit(self, level: str, message: str, extra: dict[str, Any]) -> None:
        style = _LEVEL_STYLES[level]
        context = " ".join(f"{k}={v}" for k, v in extra.items())
        line = f"[{style}][{level}][/{style}] {escape(message)}"
        if context:
            line += f" [dim]{escape(context)}[/dim]"
        with self._lock:
            self.console.print(line)
            write_cli_log(level, message, log_file=self.log_file, **extra)
