"""Shared fixtures for unit tests."""

import itertools
from pathlib import Path

import pytest

from program_blocker.domain.entities import (
    Direction,
    ExecutableTarget,
    FirewallRule,
    RuleAction,
)
from program_blocker.domain.exceptions import (
    RuleStoreOperationException,
    RuleStoreQueryException,
    RuleStoreTimeoutException,
    RuleStoreUnavailableException,
)

OWNER_GROUP = "PS-SetProgramRule"


class InMemoryRuleStore:
    """
    Rule store fake keeping rules in a list.

    Failures can be injected per program/direction for creates, per rule
    name for removals, and per program for queries. Operations named in
    unavailable behave as if PowerShell could not be started.
    """

    def __init__(self):
        self.rules: list[FirewallRule] = []
        self.fail_create: set[tuple[str, Direction]] = set()
        self.timeout_create: set[tuple[str, Direction]] = set()
        self.fail_remove: set[str] = set()
        self.fail_query: set[str] = set()
        self.fail_group_query = False
        self.unavailable: set[str] = set()
        self.calls: list[str] = []
        self._ids = itertools.count(1)

    def add(
        self,
        program: str,
        direction: Direction,
        group: str = OWNER_GROUP,
        display_name: str | None = None,
    ) -> FirewallRule:
        rule = FirewallRule(
            name=f"rule-{next(self._ids)}",
            display_name=display_name or Path(program).name,
            direction=direction,
            group=group,
            program_path=program,
            action=RuleAction.BLOCK,
        )
        self.rules.append(rule)
        return rule

    def _check_available(self, operation: str) -> None:
        if operation in self.unavailable:
            raise RuleStoreUnavailableException("PowerShell not found: powershell.exe")

    def rules_for(self, program: str) -> list[FirewallRule]:
        return [rule for rule in self.rules if rule.program_path == program]

    def query_rules_by_program(self, program, direction=None, group=None):
        self.calls.append("query_program")
        self._check_available("query_program")
        if program in self.fail_query:
            raise RuleStoreQueryException(f"query failed for {program}")
        return [
            rule for rule in self.rules
            if rule.program_path == program
            and (direction is None or rule.direction == direction)
            and (group is None or rule.group == group)
        ]

    def create_rule(self, display_name, direction, group, action, profile, program):
        self.calls.append("create")
        self._check_available("create")
        if (program, direction) in self.fail_create:
            raise RuleStoreOperationException("The rule was rejected", status_code=1)
        if (program, direction) in self.timeout_create:
            raise RuleStoreTimeoutException("Rule store call timed out after 30s")
        rule = FirewallRule(
            name=f"rule-{next(self._ids)}",
            display_name=display_name,
            direction=direction,
            group=group,
            program_path=program,
            action=action,
            profile=profile,
        )
        self.rules.append(rule)
        return rule

    def remove_rule(self, rule):
        self.calls.append("remove")
        self._check_available("remove")
        if rule.name in self.fail_remove:
            raise RuleStoreOperationException(f"cannot remove {rule.name}", status_code=1)
        self.rules = [existing for existing in self.rules if existing.name != rule.name]

    def query_rules_by_group(self, group):
        self.calls.append("query_group")
        self._check_available("query_group")
        if self.fail_group_query:
            raise RuleStoreQueryException("enumeration failed")
        return [rule for rule in self.rules if rule.group == group]


@pytest.fixture
def store() -> InMemoryRuleStore:
    """Empty in-memory rule store."""
    return InMemoryRuleStore()


@pytest.fixture
def owner_group() -> str:
    """Default owner group tag."""
    return OWNER_GROUP


@pytest.fixture
def executables(tmp_path: Path) -> list[ExecutableTarget]:
    """Three existing executables on disk."""
    targets = []
    for name in ("one.exe", "two.exe", "three.exe"):
        path = tmp_path / name
        path.write_bytes(b"MZ")
        targets.append(ExecutableTarget(path=path))
    return targets
