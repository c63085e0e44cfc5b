"""Report sinks receiving one line per outcome."""

import logging
from typing import Protocol

from rich.console import Console
from rich.text import Text


class ReportSink(Protocol):
    """Protocol for outcome line consumers."""

    def emit(self, line: str) -> None:
        """Emit one report line."""
        ...


class ConsoleReportSink:
    """Prints report lines with Rich markup."""

    def __init__(self, console: Console | None = None):
        """
        Initialize sink.

        Args:
            console: Console to print to (default: a new stdout console)
        """
        self._console = console or Console()

    def emit(self, line: str) -> None:
        """Print a line, interpreting color markup."""
        self._console.print(line, highlight=False)


class LoggingReportSink:
    """Writes report lines to a logger with markup stripped."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("program_blocker.report")
        self._level = level

    def emit(self, line: str) -> None:
        """Log a line as plain text."""
        plain = Text.from_markup(line).plain
        for part in plain.splitlines() or [""]:
            if part.strip():
                self._logger.log(self._level, part)
