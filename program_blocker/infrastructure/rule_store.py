"""Infrastructure layer for Windows Firewall rule store interactions."""

import json
import logging
import subprocess
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from program_blocker.domain.entities import Direction, FirewallRule, RuleAction
from program_blocker.domain.exceptions import (
    RuleStoreException,
    RuleStoreOperationException,
    RuleStoreQueryException,
    RuleStoreTimeoutException,
    RuleStoreUnavailableException,
)

logger = logging.getLogger(__name__)


class RuleRecord(BaseModel):
    """Rule projection emitted by the PowerShell query pipeline."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., alias="Name")
    display_name: str = Field("", alias="DisplayName")
    direction: Direction = Field(..., alias="Direction")
    group: str | None = Field(None, alias="Group")
    action: RuleAction = Field(RuleAction.BLOCK, alias="Action")
    enabled: bool = Field(True, alias="Enabled")
    profile: str = Field("Any", alias="Profile")
    program: str | None = Field(None, alias="Program")

    def to_rule(self) -> FirewallRule:
        """Convert to a domain FirewallRule."""
        return FirewallRule(
            name=self.name,
            display_name=self.display_name or self.name,
            direction=self.direction,
            group=self.group or "",
            program_path=self.program or "",
            action=self.action,
            enabled=self.enabled,
            profile=self.profile,
        )


_RECORDS = TypeAdapter(list[RuleRecord])


class RuleStore(Protocol):
    """Protocol defining the firewall rule store interface."""

    def query_rules_by_program(
        self,
        program: str,
        direction: Direction | None = None,
        group: str | None = None,
    ) -> list[FirewallRule]:
        """Find rules filtering on a program path."""
        ...

    def create_rule(
        self,
        display_name: str,
        direction: Direction,
        group: str,
        action: RuleAction,
        profile: str,
        program: str,
    ) -> FirewallRule:
        """Create a program rule."""
        ...

    def remove_rule(self, rule: FirewallRule) -> None:
        """Remove a rule."""
        ...

    def query_rules_by_group(self, group: str) -> list[FirewallRule]:
        """Find all rules carrying a group tag."""
        ...


def quote(value: str) -> str:
    """
    Quote a value as a PowerShell single-quoted literal.

    Args:
        value: Raw string

    Returns:
        Literal with embedded single quotes doubled
    """
    return "'" + value.replace("'", "''") + "'"


# Projects NetFirewallRule objects piped in into plain JSON-friendly records.
_PROJECTION = (
    "ForEach-Object { "
    "$filter = $_ | Get-NetFirewallApplicationFilter; "
    "[pscustomobject]@{ "
    "Name = $_.Name; "
    "DisplayName = $_.DisplayName; "
    "Direction = [string]$_.Direction; "
    "Group = $_.Group; "
    "Action = [string]$_.Action; "
    "Enabled = [string]$_.Enabled; "
    "Profile = [string]$_.Profile; "
    "Program = $filter.Program "
    "} }"
)


class PowerShellRuleStore:
    """
    Adapter for the Windows Firewall rule store.

    Drives the NetSecurity cmdlets through powershell.exe and translates
    their JSON output into domain rules. Every call is bounded by a
    timeout.
    """

    BASE_ARGS = ("-NoLogo", "-NoProfile", "-NonInteractive", "-Command")

    # Output is decoded as UTF-8 regardless of the console code page
    PREAMBLE = (
        "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; "
        "$ErrorActionPreference = 'Stop'; "
    )

    def __init__(self, executable: str = "powershell.exe", timeout: float = 30.0):
        """
        Initialize rule store.

        Args:
            executable: PowerShell executable (default: powershell.exe)
            timeout: Seconds allowed for each store call
        """
        self._executable = executable
        self._timeout = timeout

    def _run(self, script: str) -> str:
        """
        Run a PowerShell script and return its standard output.

        Args:
            script: Script body

        Returns:
            Stripped standard output

        Raises:
            RuleStoreUnavailableException: If PowerShell cannot be started
            RuleStoreTimeoutException: If the call exceeds the timeout
            RuleStoreOperationException: If the script exits non-zero
        """
        command = self.PREAMBLE + script
        logger.debug("Running rule store command: %s", command)

        try:
            result = subprocess.run(
                [self._executable, *self.BASE_ARGS, command],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise RuleStoreUnavailableException(
                f"PowerShell not found: {self._executable}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise RuleStoreTimeoutException(
                f"Rule store call timed out after {self._timeout:g}s"
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            stdout = (result.stdout or "").strip()
            message = stderr or stdout or "Unknown error from PowerShell"
            raise RuleStoreOperationException(message, status_code=result.returncode)

        return (result.stdout or "").strip()

    def _parse_rules(self, output: str) -> list[FirewallRule]:
        """
        Parse ConvertTo-Json output into rules.

        Args:
            output: JSON text; a single object, an array, or empty

        Returns:
            Parsed rules

        Raises:
            RuleStoreQueryException: If the output is not valid rule JSON
        """
        if not output:
            return []

        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise RuleStoreQueryException(f"Unreadable rule store output: {e}") from e

        # ConvertTo-Json emits a bare object for a single result
        if isinstance(data, dict):
            data = [data]

        try:
            records = _RECORDS.validate_python(data)
        except ValidationError as e:
            raise RuleStoreQueryException(f"Unexpected rule store output: {e}") from e

        return [record.to_rule() for record in records]

    def _query(self, pipeline: str) -> list[FirewallRule]:
        script = f"@({pipeline} | {_PROJECTION}) | ConvertTo-Json -Compress -Depth 3"
        try:
            output = self._run(script)
        except (RuleStoreUnavailableException, RuleStoreTimeoutException):
            raise
        except RuleStoreException as e:
            raise RuleStoreQueryException(str(e)) from e
        return self._parse_rules(output)

    def query_rules_by_program(
        self,
        program: str,
        direction: Direction | None = None,
        group: str | None = None,
    ) -> list[FirewallRule]:
        """
        Find rules filtering on a program path.

        Args:
            program: Full program path
            direction: Restrict to one direction (default: both)
            group: Restrict to one group tag (default: any group)

        Returns:
            Matching rules in store enumeration order

        Raises:
            RuleStoreQueryException: If the query fails
        """
        pipeline = (
            f"Get-NetFirewallApplicationFilter -Program {quote(program)} "
            "-ErrorAction SilentlyContinue | Get-NetFirewallRule"
        )
        if direction is not None:
            pipeline += f" | Where-Object {{ $_.Direction -eq {quote(direction.value)} }}"
        if group is not None:
            pipeline += f" | Where-Object {{ $_.Group -ceq {quote(group)} }}"
        return self._query(pipeline)

    def query_rules_by_group(self, group: str) -> list[FirewallRule]:
        """
        Find all rules carrying a group tag.

        Args:
            group: Exact group tag

        Returns:
            Rules in the group

        Raises:
            RuleStoreQueryException: If the query fails
        """
        pipeline = (
            "Get-NetFirewallRule -ErrorAction SilentlyContinue"
            f" | Where-Object {{ $_.Group -ceq {quote(group)} }}"
        )
        return self._query(pipeline)

    def create_rule(
        self,
        display_name: str,
        direction: Direction,
        group: str,
        action: RuleAction,
        profile: str,
        program: str,
    ) -> FirewallRule:
        """
        Create a program rule.

        Args:
            display_name: Rule display name
            direction: Traffic direction
            group: Group tag
            action: Rule action
            profile: Firewall profile
            program: Full program path

        Returns:
            The created rule

        Raises:
            RuleStoreOperationException: If the store rejects the rule
            RuleStoreTimeoutException: If the call times out
        """
        pipeline = (
            "New-NetFirewallRule"
            f" -DisplayName {quote(display_name)}"
            f" -Direction {direction.value}"
            f" -Group {quote(group)}"
            f" -Action {action.value}"
            f" -Profile {quote(profile)}"
            f" -Program {quote(program)}"
            " -Enabled True"
        )
        script = f"@({pipeline} | {_PROJECTION}) | ConvertTo-Json -Compress -Depth 3"
        output = self._run(script)

        try:
            rules = self._parse_rules(output)
        except RuleStoreQueryException as e:
            raise RuleStoreOperationException(str(e)) from e

        if rules:
            return rules[0]

        # The cmdlet succeeded but emitted nothing to project
        return FirewallRule(
            name=display_name,
            display_name=display_name,
            direction=direction,
            group=group,
            program_path=program,
            action=action,
            profile=profile,
        )

    def remove_rule(self, rule: FirewallRule) -> None:
        """
        Remove a rule by its unique name.

        Args:
            rule: Rule to remove

        Raises:
            RuleStoreOperationException: If the store rejects the removal
            RuleStoreTimeoutException: If the call times out
        """
        self._run(f"Remove-NetFirewallRule -Name {quote(rule.name)}")
