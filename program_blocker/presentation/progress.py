"""Progress tracking for batch operations."""

from rich.console import Console
from rich.progress import Progress, TaskID


class ProgressTracker:
    """
    Tracks progress of per-executable reconciliation.

    Wraps Rich Progress for consistent progress display. A disabled
    tracker accepts the same calls and draws nothing.
    """

    def __init__(self, console: Console | None = None, enabled: bool = True):
        """
        Initialize progress tracker.

        Args:
            console: Console to draw on; share it with the report sink so
                lines print above the bar
            enabled: Whether to draw anything
        """
        self._progress = Progress(console=console, transient=True, disable=not enabled)
        self._task: TaskID | None = None

    def __enter__(self):
        """Enter context manager."""
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        return self._progress.__exit__(exc_type, exc_val, exc_tb)

    def start_task(self, total: int, description: str = "Processing") -> None:
        """
        Start a new progress task.

        Args:
            total: Total number of items to process
            description: Task description
        """
        self._task = self._progress.add_task(
            f"[blue]{description}...[/blue]",
            total=total,
        )

    def advance(self, amount: int = 1) -> None:
        """
        Advance progress.

        Args:
            amount: Amount to advance (default: 1)
        """
        if self._task is not None:
            self._progress.update(self._task, advance=amount)
