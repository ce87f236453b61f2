"""Shared protocol definitions."""

from typing import Any, Protocol


class MetricsLogger(Protocol):
    """Protocol for leveled logging (console logger, test recorders)."""

    def info(self, message: str, **extra: Any) -> None: ...
    def warn(self, message: str, **extra: Any) -> None: ...
    def error(self, message: str, **extra: Any) -> None: ...
