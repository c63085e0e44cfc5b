"""Service for reconciling program block rules."""

import logging
from typing import Callable, Iterable

from program_blocker.domain.entities import (
    Direction,
    ExecutableTarget,
    FirewallRule,
    OutcomeStatus,
    ReconciliationOutcome,
    RuleAction,
)
from program_blocker.domain.exceptions import (
    RuleStoreException,
    RuleStoreQueryException,
    RuleStoreUnavailableException,
)
from program_blocker.infrastructure.rule_store import RuleStore
from program_blocker.services.rule_query import RuleQueryService

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[ReconciliationOutcome], None]


class RuleReconciler:
    """
    Brings the rule store in line with a desired block state.

    Each target and direction is handled independently; a failure on
    one never stops the rest of the batch.
    """

    DIRECTIONS = (Direction.INBOUND, Direction.OUTBOUND)
    PROFILE = "Any"

    def __init__(
        self,
        store: RuleStore,
        owner_group: str,
        unblock_any_group: bool = False,
        fail_open_on_query_error: bool = False,
    ):
        """
        Initialize service.

        Args:
            store: Rule store to reconcile against
            owner_group: Group tag put on every created rule
            unblock_any_group: Unblock also removes rules outside the owner group
            fail_open_on_query_error: Treat a failed lookup as "no rules" when blocking
        """
        self._store = store
        self._query = RuleQueryService(store, owner_group)
        self._owner_group = owner_group
        self._unblock_any_group = unblock_any_group
        self._fail_open = fail_open_on_query_error

    def apply_block(
        self,
        targets: Iterable[ExecutableTarget],
        callback: OutcomeCallback | None = None,
    ) -> list[ReconciliationOutcome]:
        """
        Ensure inbound and outbound block rules exist for each target.

        Args:
            targets: Executables to block
            callback: Optional callback for each outcome

        Returns:
            One outcome per target and direction
        """
        outcomes = []

        for target in targets:
            for direction in self.DIRECTIONS:
                outcome = self._block_direction(target, direction)
                outcomes.append(outcome)
                if callback:
                    callback(outcome)

        return outcomes

    def _block_direction(
        self,
        target: ExecutableTarget,
        direction: Direction,
    ) -> ReconciliationOutcome:
        """
        Block one target in one direction.

        Args:
            target: Executable to block
            direction: Direction to block

        Returns:
            Outcome of the step
        """
        try:
            existing = self._query.find_rules(target.program, direction=direction)
        except RuleStoreQueryException as e:
            if not self._fail_open:
                return ReconciliationOutcome(
                    program_path=target.program,
                    status=OutcomeStatus.QUERY_FAILED,
                    direction=direction,
                    message=str(e),
                )
            logger.warning(
                "Rule lookup for %s (%s) failed, assuming none exist: %s",
                target.program,
                direction.value,
                e,
            )
            existing = []

        if existing:
            return ReconciliationOutcome(
                program_path=target.program,
                status=OutcomeStatus.ALREADY_EXISTS,
                direction=direction,
                rule_name=existing[0].display_name,
                message="Rule already exists",
            )

        try:
            rule = self._store.create_rule(
                display_name=target.name,
                direction=direction,
                group=self._owner_group,
                action=RuleAction.BLOCK,
                profile=self.PROFILE,
                program=target.program,
            )
        except RuleStoreUnavailableException:
            raise
        except RuleStoreException as e:
            logger.debug("Create failed for %s (%s): %s", target.program, direction.value, e)
            return ReconciliationOutcome(
                program_path=target.program,
                status=OutcomeStatus.CREATE_FAILED,
                direction=direction,
                rule_name=target.name,
                message=str(e) or "Rule creation failed",
            )

        return ReconciliationOutcome(
            program_path=target.program,
            status=OutcomeStatus.CREATED,
            direction=direction,
            rule_name=rule.display_name,
            message="Blocked",
        )

    def apply_unblock(
        self,
        targets: Iterable[ExecutableTarget],
        callback: OutcomeCallback | None = None,
    ) -> list[ReconciliationOutcome]:
        """
        Remove block rules for each target.

        Only owner-tagged rules are removed unless the reconciler was
        built with unblock_any_group.

        Args:
            targets: Executables to unblock
            callback: Optional callback for each outcome

        Returns:
            One outcome per removed rule, or one NONE_FOUND / QUERY_FAILED
            outcome per target
        """
        outcomes = []

        for target in targets:
            for outcome in self._unblock_target(target):
                outcomes.append(outcome)
                if callback:
                    callback(outcome)

        return outcomes

    def _unblock_target(self, target: ExecutableTarget) -> list[ReconciliationOutcome]:
        group = None if self._unblock_any_group else self._owner_group

        try:
            rules = self._query.find_rules(target.program, group=group)
        except RuleStoreQueryException as e:
            return [
                ReconciliationOutcome(
                    program_path=target.program,
                    status=OutcomeStatus.QUERY_FAILED,
                    message=str(e),
                )
            ]

        if not rules:
            return [
                ReconciliationOutcome(
                    program_path=target.program,
                    status=OutcomeStatus.NONE_FOUND,
                    message="No rules found",
                )
            ]

        return [self._remove(rule, target.program) for rule in rules]

    def _remove(self, rule: FirewallRule, program_path: str) -> ReconciliationOutcome:
        """
        Remove a single rule.

        Args:
            rule: Rule to remove
            program_path: Program path reported for the rule

        Returns:
            REMOVED or REMOVAL_FAILED outcome
        """
        try:
            self._store.remove_rule(rule)
        except RuleStoreUnavailableException:
            raise
        except RuleStoreException as e:
            logger.debug("Remove failed for rule %s: %s", rule.name, e)
            return ReconciliationOutcome(
                program_path=program_path,
                status=OutcomeStatus.REMOVAL_FAILED,
                direction=rule.direction,
                rule_name=rule.display_name,
                message=str(e) or "Rule removal failed",
            )

        return ReconciliationOutcome(
            program_path=program_path,
            status=OutcomeStatus.REMOVED,
            direction=rule.direction,
            rule_name=rule.display_name,
            message="Removed",
        )
