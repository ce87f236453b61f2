"""Shared logging utilities."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "exporter.log"


def format_log_line(level: str, message: str, **extra: Any) -> str:
    """Render ``[timestamp] LEVEL: message key=value ...``."""
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    return line


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path = CLI_LOG_FILE,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with log_file.open("a") as f:
        f.write(format_log_line(level, message, **extra) + "\n")


def clear_logs(log_file: Path = CLI_LOG_FILE) -> None:
    """Truncate the CLI log file from a previous run."""
    if log_file.exists():
        log_file.write_text("")
