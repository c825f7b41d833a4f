"""User-facing status notifications.

The session engine reports progress and failures only through a
StatusReporter; it never builds UI itself.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class StatusLevel(Enum):
    """Severity of a status notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class StatusReporter(Protocol):
    """Fire-and-forget UI feedback channel."""

    def notify(self, message: str, level: StatusLevel = StatusLevel.INFO) -> None:
        """Show a message to the user. Must not raise or block."""
        ...


_LOG_LEVELS = {
    StatusLevel.INFO: logging.INFO,
    StatusLevel.SUCCESS: logging.INFO,
    StatusLevel.WARNING: logging.WARNING,
    StatusLevel.ERROR: logging.ERROR,
}

_ICONS = {
    StatusLevel.INFO: "[i]",
    StatusLevel.SUCCESS: "[ok]",
    StatusLevel.WARNING: "[!]",
    StatusLevel.ERROR: "[x]",
}


class LoggingStatusReporter:
    """Logs every notification and optionally echoes it to the console."""

    def __init__(self, echo: bool = True) -> None:
        """Initialize reporter.

        Args:
            echo: Also print notifications to stdout
        """
        self._echo = echo

    def notify(self, message: str, level: StatusLevel = StatusLevel.INFO) -> None:
        logger.log(_LOG_LEVELS[level], message)
        if self._echo:
            print(f"{_ICONS[level]} {message}", flush=True)


@dataclass(frozen=True)
class StatusMessage:
    """A recorded notification."""

    message: str
    level: StatusLevel


class RecordingStatusReporter:
    """Keeps notifications in memory for tests."""

    def __init__(self) -> None:
        self.messages: list[StatusMessage] = []

    def notify(self, message: str, level: StatusLevel = StatusLevel.INFO) -> None:
        self.messages.append(StatusMessage(message, level))

    def texts(self, level: StatusLevel | None = None) -> list[str]:
        """Messages, optionally filtered by level."""
        return [m.message for m in self.messages if level is None or m.level == level]

    def contains(self, fragment: str, level: StatusLevel | None = None) -> bool:
        """Return True if any message contains fragment."""
        return any(fragment in text for text in self.texts(level))


__all__ = [
    "LoggingStatusReporter",
    "RecordingStatusReporter",
    "StatusLevel",
    "StatusMessage",
    "StatusReporter",
]
