"""Output formatting for terminal display."""

from typing import Final

from rich.markup import escape

from program_blocker.domain.entities import (
    OperationSummary,
    OutcomeStatus,
    PurgeResult,
    ReconciliationOutcome,
)


class ColorFormatter:
    """Formats messages with Rich terminal colors."""

    # Color templates - using ASCII-safe characters
    SUCCESS: Final[str] = "[green]+[/green]"
    ERROR: Final[str] = "[red]x[/red]"
    WARNING: Final[str] = "[yellow]![/yellow]"
    INFO: Final[str] = "[blue]i[/blue]"

    @classmethod
    def success(cls, message: str) -> str:
        """Format success message."""
        return f"[green]{message}[/green]"

    @classmethod
    def error(cls, message: str) -> str:
        """Format error message."""
        return f"[red]{message}[/red]"

    @classmethod
    def warning(cls, message: str) -> str:
        """Format warning message."""
        return f"[yellow]{message}[/yellow]"

    @classmethod
    def info(cls, message: str) -> str:
        """Format info message."""
        return f"[blue]{message}[/blue]"


class OutcomeFormatter:
    """Formats reconciliation outcomes for display."""

    @staticmethod
    def format(outcome: ReconciliationOutcome) -> str:
        """
        Format a reconciliation outcome.

        Args:
            outcome: Outcome to format

        Returns:
            Formatted string with color markup
        """
        subject = escape(outcome.program_path)
        if outcome.direction is not None:
            subject = f"{subject} ({outcome.direction.value})"

        rule = f" '{escape(outcome.rule_name)}'" if outcome.rule_name else ""
        message = escape(outcome.message)

        if outcome.status == OutcomeStatus.CREATED:
            return f"{ColorFormatter.SUCCESS} {subject}: Created rule{rule}"

        if outcome.status == OutcomeStatus.ALREADY_EXISTS:
            return f"{ColorFormatter.WARNING} {subject}: Rule{rule} already exists"

        if outcome.status == OutcomeStatus.REMOVED:
            return f"{ColorFormatter.SUCCESS} {subject}: Removed rule{rule}"

        if outcome.status == OutcomeStatus.NONE_FOUND:
            return f"{ColorFormatter.INFO} {subject}: No rules found"

        if outcome.status == OutcomeStatus.CREATE_FAILED:
            return f"{ColorFormatter.ERROR} {subject}: Failed to create rule{rule}: {message}"

        if outcome.status == OutcomeStatus.REMOVAL_FAILED:
            return f"{ColorFormatter.ERROR} {subject}: Failed to remove rule{rule}: {message}"

        if outcome.status == OutcomeStatus.QUERY_FAILED:
            return f"{ColorFormatter.ERROR} {subject}: Rule lookup failed: {message}"

        return f"{ColorFormatter.INFO} {subject}: Unknown status"


class SummaryFormatter:
    """Formats block and unblock summaries."""

    @staticmethod
    def format(summary: OperationSummary) -> str:
        """
        Format an operation summary.

        Args:
            summary: Operation summary to format

        Returns:
            Multi-line formatted summary
        """
        lines = [
            "\n" + "=" * 60,
            ColorFormatter.info("Summary"),
            "=" * 60,
            f"Total outcomes: {summary.total}",
            f"{ColorFormatter.SUCCESS} Created: {summary.created}",
            f"{ColorFormatter.WARNING} Already existed: {summary.already_exists}",
            f"{ColorFormatter.SUCCESS} Removed: {summary.removed}",
            f"{ColorFormatter.INFO} None found: {summary.none_found}",
            f"{ColorFormatter.ERROR} Failed: {summary.failed}",
            "=" * 60,
        ]

        return "\n".join(lines)


class PurgeFormatter:
    """Formats purge results."""

    @staticmethod
    def format(result: PurgeResult) -> str:
        """
        Format a purge result.

        Args:
            result: Purge result to format

        Returns:
            Summary line followed by the distinct purged paths
        """
        if result.removed_count == 0 and result.failed_count == 0:
            return ColorFormatter.info(
                f"No orphaned rules found ({result.scanned} owned rule(s) checked)"
            )

        header = f"{ColorFormatter.SUCCESS} Purged {result.removed_count} orphaned rule(s)"
        if result.failed_count:
            header += f", {ColorFormatter.ERROR} {result.failed_count} failed"

        if not result.removed_paths:
            return header

        return header + ":\n" + "\n".join(escape(path) for path in result.removed_paths)
