"""Service for purging orphaned program rules."""

import logging
from typing import Callable

from program_blocker.domain.entities import (
    FirewallRule,
    OutcomeStatus,
    PurgeResult,
    ReconciliationOutcome,
)
from program_blocker.domain.exceptions import RuleStoreException, RuleStoreUnavailableException
from program_blocker.infrastructure.path_resolver import path_exists
from program_blocker.infrastructure.rule_store import RuleStore
from program_blocker.services.rule_query import RuleQueryService

logger = logging.getLogger(__name__)


class OrphanScanner:
    """
    Removes owner-tagged rules whose program no longer exists.

    Rules outside the owner group are never touched, whatever their
    program path.
    """

    def __init__(
        self,
        store: RuleStore,
        owner_group: str,
        exists: Callable[[str], bool] = path_exists,
    ):
        """
        Initialize service.

        Args:
            store: Rule store to purge
            owner_group: Group tag marking rules this tool owns
            exists: Filesystem existence test for program paths
        """
        self._store = store
        self._query = RuleQueryService(store, owner_group)
        self._exists = exists

    def find_orphans(self) -> tuple[list[FirewallRule], int]:
        """
        Find owner-tagged rules whose program path is gone.

        Returns:
            Tuple of (orphaned rules, number of owner-tagged rules scanned)

        Raises:
            RuleStoreQueryException: If the store cannot be enumerated
        """
        owned = self._query.owned_rules()
        orphans = [
            rule for rule in owned
            if rule.has_program_filter and not self._exists(rule.program_path)
        ]
        logger.debug("Scanned %d owned rule(s), %d orphaned", len(owned), len(orphans))
        return orphans, len(owned)

    def purge(
        self,
        callback: Callable[[ReconciliationOutcome], None] | None = None,
    ) -> PurgeResult:
        """
        Remove every orphaned owner-tagged rule.

        Args:
            callback: Optional callback for each outcome

        Returns:
            Count of removed rules and the distinct paths they referenced

        Raises:
            RuleStoreQueryException: If the store cannot be enumerated
        """
        orphans, scanned = self.find_orphans()
        result = PurgeResult(scanned=scanned)

        for rule in orphans:
            outcome = self._remove(rule)
            result.outcomes.append(outcome)

            if outcome.status == OutcomeStatus.REMOVED:
                result.removed_count += 1
                if rule.program_path not in result.removed_paths:
                    result.removed_paths.append(rule.program_path)

            if callback:
                callback(outcome)

        return result

    def _remove(self, rule: FirewallRule) -> ReconciliationOutcome:
        try:
            self._store.remove_rule(rule)
        except RuleStoreUnavailableException:
            raise
        except RuleStoreException as e:
            return ReconciliationOutcome(
                program_path=rule.program_path,
                status=OutcomeStatus.REMOVAL_FAILED,
                direction=rule.direction,
                rule_name=rule.display_name,
                message=str(e) or "Rule removal failed",
            )

        return ReconciliationOutcome(
            program_path=rule.program_path,
            status=OutcomeStatus.REMOVED,
            direction=rule.direction,
            rule_name=rule.display_name,
            message="Orphaned rule removed",
        )
