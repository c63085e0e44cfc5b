"""CLI command implementation."""

import argparse
import logging
import sys
from enum import Enum

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from program_blocker.config.settings import ApplicationSettings, RuleSettings, get_settings
from program_blocker.domain.entities import ExecutableTarget, OperationSummary
from program_blocker.domain.exceptions import (
    ConfigurationException,
    ResolutionException,
    RuleStoreException,
)
from program_blocker.domain.validators import ExecutableValidator, OwnerGroupValidator
from program_blocker.infrastructure.path_resolver import FileSystemPathResolver, PathResolver
from program_blocker.infrastructure.privileges import is_elevated
from program_blocker.infrastructure.rule_store import PowerShellRuleStore, RuleStore
from program_blocker.presentation.formatters import (
    ColorFormatter,
    OutcomeFormatter,
    PurgeFormatter,
    SummaryFormatter,
)
from program_blocker.presentation.progress import ProgressTracker
from program_blocker.presentation.report import ConsoleReportSink, LoggingReportSink, ReportSink
from program_blocker.services.orphan_service import OrphanScanner
from program_blocker.services.reconciler import RuleReconciler

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RESOLUTION_ERROR = 1
EXIT_STORE_ERROR = 3
EXIT_CONFIGURATION_ERROR = 4
EXIT_PARTIAL_FAILURE = 5
EXIT_INTERRUPTED = 130


class Mode(Enum):
    """Operation selected on the command line."""

    BLOCK = "block"
    UNBLOCK = "unblock"
    PURGE = "purge"


class Application:
    """Main application orchestrator."""

    def __init__(
        self,
        mode: Mode,
        path: str | None = None,
        app_settings: ApplicationSettings | None = None,
        rule_settings: RuleSettings | None = None,
        store: RuleStore | None = None,
        resolver: PathResolver | None = None,
        sink: ReportSink | None = None,
        console: Console | None = None,
    ):
        """
        Initialize application.

        Args:
            mode: Operation to run
            path: Target path for block and unblock
            app_settings: Application settings (default: loaded from env)
            rule_settings: Rule settings (default: loaded from env)
            store: Rule store (default: PowerShell-backed store)
            resolver: Path resolver (default: filesystem resolver)
            sink: Report sink (default: chosen by settings)
            console: Console for report lines and progress

        Raises:
            ConfigurationException: If settings cannot be loaded
        """
        if mode in (Mode.BLOCK, Mode.UNBLOCK) and not path:
            raise ConfigurationException(f"A path is required for {mode.value}")

        self.mode = mode
        self.path = path

        if app_settings is None or rule_settings is None:
            try:
                loaded_app, loaded_rules = get_settings()
            except ValidationError as e:
                raise ConfigurationException(f"Failed to load settings: {e}") from e
            if app_settings is None:
                app_settings = loaded_app
            if rule_settings is None:
                rule_settings = loaded_rules

        self.app_settings = app_settings
        self.rule_settings = rule_settings
        self.console = console or Console()

        self._initialize_components(store, resolver, sink)

    def _initialize_components(
        self,
        store: RuleStore | None,
        resolver: PathResolver | None,
        sink: ReportSink | None,
    ) -> None:
        """Initialize all application components."""
        try:
            validator = ExecutableValidator(self.rule_settings.executable_extensions)
        except ValueError as e:
            raise ConfigurationException(str(e)) from e

        self.resolver = resolver or FileSystemPathResolver(validator)

        self.store = store or PowerShellRuleStore(
            executable=self.rule_settings.powershell_executable,
            timeout=self.rule_settings.store_timeout,
        )

        if sink is not None:
            self.sink = sink
        elif self.app_settings.report_sink == "log":
            self.sink = LoggingReportSink()
        else:
            self.sink = ConsoleReportSink(self.console)

        self.reconciler = RuleReconciler(
            store=self.store,
            owner_group=self.rule_settings.owner_group,
            unblock_any_group=self.rule_settings.unblock_any_group,
            fail_open_on_query_error=self.rule_settings.fail_open_on_query_error,
        )
        self.orphan_scanner = OrphanScanner(
            store=self.store,
            owner_group=self.rule_settings.owner_group,
        )

    def run(self) -> int:
        """
        Run the application.

        Returns:
            Exit code (0 for success)
        """
        try:
            if self.mode == Mode.PURGE:
                return self._run_purge()
            return self._run_reconcile()

        except ResolutionException as e:
            self.sink.emit(ColorFormatter.error(f"Path error: {e}"))
            return EXIT_RESOLUTION_ERROR

        except RuleStoreException as e:
            self.sink.emit(ColorFormatter.error(f"Rule store error: {e}"))
            return EXIT_STORE_ERROR

        except ConfigurationException as e:
            self.sink.emit(ColorFormatter.error(f"Configuration error: {e}"))
            return EXIT_CONFIGURATION_ERROR

        except KeyboardInterrupt:
            self.sink.emit(ColorFormatter.warning("\n\nOperation cancelled by user"))
            return EXIT_INTERRUPTED

    def _run_reconcile(self) -> int:
        """Resolve the target path and block or unblock what it contains."""
        self.sink.emit(ColorFormatter.info(f"Resolving executables in: {self.path}"))
        targets = self.resolver.resolve(self.path)

        if not targets:
            self.sink.emit(ColorFormatter.warning(f"No executables found in: {self.path}"))
            return EXIT_OK

        self.sink.emit(ColorFormatter.success(f"Found {len(targets)} executable(s)\n"))

        outcome_formatter = OutcomeFormatter()
        summary = OperationSummary()

        def report(outcome) -> None:
            """Callback to emit each outcome as it is produced."""
            summary.record_outcome(outcome)
            self.sink.emit(outcome_formatter.format(outcome))

        description = "Blocking" if self.mode == Mode.BLOCK else "Unblocking"
        with ProgressTracker(self.console, enabled=self.app_settings.progress_enabled) as tracker:
            tracker.start_task(total=len(targets), description=description)
            for target in targets:
                self._reconcile_target(target, report)
                tracker.advance()

        self.sink.emit(SummaryFormatter.format(summary))

        return EXIT_PARTIAL_FAILURE if summary.has_failures else EXIT_OK

    def _reconcile_target(self, target: ExecutableTarget, report) -> None:
        if self.mode == Mode.BLOCK:
            self.reconciler.apply_block([target], callback=report)
        else:
            self.reconciler.apply_unblock([target], callback=report)

    def _run_purge(self) -> int:
        """Remove owner-tagged rules whose program is gone."""
        self.sink.emit(ColorFormatter.info(
            f"Scanning rules in group '{self.rule_settings.owner_group}' for missing programs..."
        ))

        outcome_formatter = OutcomeFormatter()
        result = self.orphan_scanner.purge(
            callback=lambda outcome: self.sink.emit(outcome_formatter.format(outcome))
        )

        self.sink.emit(PurgeFormatter.format(result))

        return EXIT_PARTIAL_FAILURE if result.failed_count else EXIT_OK


def configure_logging(level: str, verbose: bool = False) -> None:
    """
    Route log records through Rich on stderr.

    Args:
        level: Log level name
        verbose: Force DEBUG level
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="program-blocker",
        description="Block, unblock and purge Windows Firewall rules for executables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --block "C:\\Program Files\\SomeApp"
  %(prog)s --unblock C:\\Tools\\app.exe
  %(prog)s --purge

Environment Variables:
  PROGRAM_BLOCKER_OWNER_GROUP            Group tag of rules this tool owns
  PROGRAM_BLOCKER_EXECUTABLE_EXTENSIONS  JSON list of extensions (default: [".exe"])
  PROGRAM_BLOCKER_STORE_TIMEOUT          Seconds per rule store call (default: 30)
  PROGRAM_BLOCKER_UNBLOCK_ANY_GROUP      Unblock rules from every group
        """
    )

    modes = parser.add_mutually_exclusive_group(required=True)
    modes.add_argument(
        "-b", "--block",
        metavar="PATH",
        help="Block inbound and outbound traffic for executables under PATH"
    )
    modes.add_argument(
        "-u", "--unblock",
        metavar="PATH",
        help="Remove block rules for executables under PATH"
    )
    modes.add_argument(
        "-p", "--purge",
        action="store_true",
        help="Remove this tool's rules whose program no longer exists"
    )

    parser.add_argument(
        "--any-group",
        action="store_true",
        default=None,
        help="With --unblock, also remove matching rules this tool did not create"
    )
    parser.add_argument(
        "-g", "--group",
        metavar="TAG",
        help="Group tag of rules owned by this tool"
    )
    parser.add_argument(
        "-e", "--extension",
        metavar="EXT",
        action="append",
        help="Executable extension to match (repeatable, default: .exe)"
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_mode(args: argparse.Namespace) -> tuple[Mode, str | None]:
    """Return the selected mode and its path argument."""
    if args.block is not None:
        return Mode.BLOCK, args.block
    if args.unblock is not None:
        return Mode.UNBLOCK, args.unblock
    return Mode.PURGE, None


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    mode, path = parse_mode(args)
    if mode != Mode.PURGE and not path.strip():
        parser.error(f"--{mode.value} requires a non-empty PATH")
    if args.group is not None and not OwnerGroupValidator.is_valid(args.group):
        parser.error(f"invalid group tag: {args.group!r}")

    try:
        app_settings, rule_settings = get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)

    configure_logging(app_settings.log_level, verbose=args.verbose or app_settings.verbose)

    rule_updates = {}
    if args.group is not None:
        rule_updates["owner_group"] = args.group
    if args.extension:
        try:
            rule_updates["executable_extensions"] = sorted(
                ExecutableValidator(args.extension).extensions
            )
        except ValueError as e:
            parser.error(str(e))
    if args.any_group:
        rule_updates["unblock_any_group"] = True
    if rule_updates:
        rule_settings = rule_settings.model_copy(update=rule_updates)

    if args.no_progress:
        app_settings = app_settings.model_copy(update={"progress_enabled": False})

    if not is_elevated():
        logger.warning(
            "Not running with administrative privileges; firewall changes will likely fail"
        )

    try:
        app = Application(
            mode=mode,
            path=path,
            app_settings=app_settings,
            rule_settings=rule_settings,
        )
    except ConfigurationException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIGURATION_ERROR)

    exit_code = app.run()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
