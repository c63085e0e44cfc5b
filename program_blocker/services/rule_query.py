"""Service for querying the firewall rule store."""

import logging

from program_blocker.domain.entities import Direction, FirewallRule
from program_blocker.domain.exceptions import (
    RuleStoreException,
    RuleStoreQueryException,
    RuleStoreUnavailableException,
)
from program_blocker.infrastructure.rule_store import RuleStore

logger = logging.getLogger(__name__)


class RuleQueryService:
    """
    Shared rule lookups used by reconciliation and purge.

    Every call goes to the store; nothing is cached, so each mutation
    is preceded by a fresh view of the store.
    """

    def __init__(self, store: RuleStore, owner_group: str):
        """
        Initialize service.

        Args:
            store: Rule store to query
            owner_group: Group tag marking rules this tool owns
        """
        self._store = store
        self._owner_group = owner_group

    def find_rules(
        self,
        program: str,
        direction: Direction | None = None,
        group: str | None = None,
    ) -> list[FirewallRule]:
        """
        Find rules keyed by a program path.

        Args:
            program: Full program path
            direction: Restrict to one direction (default: both)
            group: Restrict to one group (default: any group)

        Returns:
            Matching rules in store enumeration order

        Raises:
            RuleStoreQueryException: If the store query fails
            RuleStoreUnavailableException: If the store cannot be reached
        """
        try:
            rules = self._store.query_rules_by_program(program, direction=direction, group=group)
        except (RuleStoreQueryException, RuleStoreUnavailableException):
            raise
        except RuleStoreException as e:
            raise RuleStoreQueryException(str(e)) from e

        logger.debug(
            "Query program=%s direction=%s group=%s -> %d rule(s)",
            program,
            direction.value if direction else "any",
            group or "any",
            len(rules),
        )
        return list(rules)

    def owned_rules(self) -> list[FirewallRule]:
        """
        Enumerate rules carrying the owner group tag.

        Rules the store returns with any other group are dropped.

        Returns:
            Owner-tagged rules

        Raises:
            RuleStoreQueryException: If the store query fails
            RuleStoreUnavailableException: If the store cannot be reached
        """
        try:
            rules = self._store.query_rules_by_group(self._owner_group)
        except (RuleStoreQueryException, RuleStoreUnavailableException):
            raise
        except RuleStoreException as e:
            raise RuleStoreQueryException(str(e)) from e

        owned = [rule for rule in rules if rule.group == self._owner_group]
        if len(owned) != len(rules):
            logger.warning(
                "Ignoring %d rule(s) returned outside group %s",
                len(rules) - len(owned),
                self._owner_group,
            )
        return owned
