"""Core domain entities representing business concepts."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class Direction(Enum):
    """Traffic direction a firewall rule filters."""

    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class RuleAction(Enum):
    """Action a firewall rule applies to matching traffic."""

    BLOCK = "Block"
    ALLOW = "Allow"


class OutcomeStatus(Enum):
    """Status of a single reconciliation step."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    CREATE_FAILED = "create_failed"
    REMOVED = "removed"
    REMOVAL_FAILED = "removal_failed"
    NONE_FOUND = "none_found"
    QUERY_FAILED = "query_failed"


FAILED_STATUSES = frozenset({
    OutcomeStatus.CREATE_FAILED,
    OutcomeStatus.REMOVAL_FAILED,
    OutcomeStatus.QUERY_FAILED,
})


@dataclass(frozen=True)
class ExecutableTarget:
    """
    An executable discovered on the filesystem.

    Immutable value object; the path is absolute and was known to refer
    to a file with an executable extension when it was resolved.
    """

    path: Path

    @property
    def name(self) -> str:
        """File name, used as the display name of created rules."""
        return self.path.name

    @property
    def program(self) -> str:
        """Program path as the rule store keys it."""
        return str(self.path)


@dataclass(frozen=True)
class FirewallRule:
    """
    A rule owned by the external rule store.

    Only the attributes this tool consumes are modelled.
    """

    name: str
    display_name: str
    direction: Direction
    group: str = ""
    program_path: str = ""
    action: RuleAction = RuleAction.BLOCK
    enabled: bool = True
    profile: str = "Any"

    @property
    def has_program_filter(self) -> bool:
        """Check if the rule is bound to a specific program."""
        return bool(self.program_path) and self.program_path.lower() != "any"


@dataclass(frozen=True)
class ReconciliationOutcome:
    """
    Result of one reconciliation step.

    Produced per (executable, direction) for block and per rule for
    unblock and purge. Exists only to drive reporting.
    """

    program_path: str
    status: OutcomeStatus
    direction: Optional[Direction] = None
    rule_name: Optional[str] = None
    message: str = ""

    @property
    def failed(self) -> bool:
        """Check if the step failed."""
        return self.status in FAILED_STATUSES


@dataclass
class PurgeResult:
    """Result of removing orphaned owner-tagged rules."""

    removed_count: int = 0
    removed_paths: list[str] = field(default_factory=list)
    outcomes: list[ReconciliationOutcome] = field(default_factory=list)
    scanned: int = 0

    @property
    def failed_count(self) -> int:
        """Number of orphaned rules that could not be removed."""
        return sum(1 for outcome in self.outcomes if outcome.failed)


@dataclass
class OperationSummary:
    """
    Summary of a block or unblock batch.

    Tracks statistics for the entire operation.
    """

    total: int = 0
    created: int = 0
    already_exists: int = 0
    removed: int = 0
    none_found: int = 0
    failed: int = 0

    def record_outcome(self, outcome: ReconciliationOutcome) -> None:
        """Update summary with an outcome."""
        self.total += 1

        if outcome.status == OutcomeStatus.CREATED:
            self.created += 1
        elif outcome.status == OutcomeStatus.ALREADY_EXISTS:
            self.already_exists += 1
        elif outcome.status == OutcomeStatus.REMOVED:
            self.removed += 1
        elif outcome.status == OutcomeStatus.NONE_FOUND:
            self.none_found += 1
        elif outcome.failed:
            self.failed += 1

    @property
    def has_failures(self) -> bool:
        """Check if any step failed."""
        return self.failed > 0
