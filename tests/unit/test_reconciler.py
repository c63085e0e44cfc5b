"""Unit tests for the rule reconciler."""

import pytest

from program_blocker.domain.entities import Direction, OutcomeStatus, RuleAction
from program_blocker.domain.exceptions import RuleStoreUnavailableException
from program_blocker.services.reconciler import RuleReconciler


def _statuses(outcomes):
    return [outcome.status for outcome in outcomes]


class TestApplyBlock:
    """Tests for RuleReconciler.apply_block."""

    def test_creates_both_directions(self, store, owner_group, executables):
        """Test a fresh target gets an inbound and an outbound rule."""
        target = executables[0]
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block([target])

        assert _statuses(outcomes) == [OutcomeStatus.CREATED, OutcomeStatus.CREATED]
        assert [o.direction for o in outcomes] == [Direction.INBOUND, Direction.OUTBOUND]

        rules = store.rules_for(target.program)
        assert {rule.direction for rule in rules} == {Direction.INBOUND, Direction.OUTBOUND}
        for rule in rules:
            assert rule.display_name == target.name
            assert rule.group == owner_group
            assert rule.action == RuleAction.BLOCK
            assert rule.profile == "Any"
            assert rule.enabled is True

    def test_block_is_idempotent(self, store, owner_group, executables):
        """Test re-blocking yields only ALREADY_EXISTS and no new rules."""
        reconciler = RuleReconciler(store, owner_group)
        reconciler.apply_block(executables)
        rule_count = len(store.rules)

        second = reconciler.apply_block(executables)

        assert set(_statuses(second)) == {OutcomeStatus.ALREADY_EXISTS}
        assert len(second) == 2 * len(executables)
        assert len(store.rules) == rule_count

    def test_existing_rule_name_is_reported(self, store, owner_group, executables):
        """Test the first existing rule's display name is reported."""
        target = executables[0]
        store.add(target.program, Direction.INBOUND, group="Other", display_name="Vendor rule")
        store.add(target.program, Direction.INBOUND, display_name="Second")
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block([target])

        assert outcomes[0].status == OutcomeStatus.ALREADY_EXISTS
        assert outcomes[0].rule_name == "Vendor rule"
        assert outcomes[1].status == OutcomeStatus.CREATED

    def test_partial_failure_is_isolated(self, store, owner_group, executables):
        """Test a failed create does not stop the rest of the batch."""
        second = executables[1]
        store.fail_create.add((second.program, Direction.OUTBOUND))
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block(executables)

        assert len(outcomes) == 6
        by_key = {(o.program_path, o.direction): o.status for o in outcomes}
        assert by_key[(second.program, Direction.INBOUND)] == OutcomeStatus.CREATED
        assert by_key[(second.program, Direction.OUTBOUND)] == OutcomeStatus.CREATE_FAILED
        for target in (executables[0], executables[2]):
            assert by_key[(target.program, Direction.INBOUND)] == OutcomeStatus.CREATED
            assert by_key[(target.program, Direction.OUTBOUND)] == OutcomeStatus.CREATED
        assert len(store.rules) == 5

    def test_timeout_is_a_create_failure(self, store, owner_group, executables):
        """Test a timed out create is recorded as a failure."""
        target = executables[0]
        store.timeout_create.add((target.program, Direction.INBOUND))
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block([target])

        assert outcomes[0].status == OutcomeStatus.CREATE_FAILED
        assert "timed out" in outcomes[0].message
        assert outcomes[1].status == OutcomeStatus.CREATED

    def test_query_failure_is_surfaced(self, store, owner_group, executables):
        """Test a failed lookup is reported and nothing is created."""
        target = executables[0]
        store.fail_query.add(target.program)
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block([target])

        assert _statuses(outcomes) == [OutcomeStatus.QUERY_FAILED, OutcomeStatus.QUERY_FAILED]
        assert store.rules == []
        assert "create" not in store.calls

    def test_query_failure_fail_open(self, store, owner_group, executables):
        """Test fail-open mode creates rules despite a failed lookup."""
        target = executables[0]
        store.fail_query.add(target.program)
        reconciler = RuleReconciler(store, owner_group, fail_open_on_query_error=True)

        outcomes = reconciler.apply_block([target])

        assert _statuses(outcomes) == [OutcomeStatus.CREATED, OutcomeStatus.CREATED]

    def test_callback_receives_every_outcome(self, store, owner_group, executables):
        """Test the callback sees outcomes in order."""
        seen = []
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_block(executables, callback=seen.append)

        assert seen == outcomes

    def test_queries_before_each_mutation(self, store, owner_group, executables):
        """Test the store is queried right before each create."""
        reconciler = RuleReconciler(store, owner_group)

        reconciler.apply_block([executables[0]])

        assert store.calls == ["query_program", "create", "query_program", "create"]

    @pytest.mark.parametrize("operation", ["query_program", "create"])
    def test_unavailable_store_aborts_batch(self, store, owner_group, executables, operation):
        """Test an unreachable store stops the batch instead of failing each step."""
        store.unavailable.add(operation)
        seen = []
        reconciler = RuleReconciler(store, owner_group, fail_open_on_query_error=True)

        with pytest.raises(RuleStoreUnavailableException):
            reconciler.apply_block(executables, callback=seen.append)

        assert seen == []
        assert store.rules == []


class TestApplyUnblock:
    """Tests for RuleReconciler.apply_unblock."""

    def test_round_trip(self, store, owner_group, executables):
        """Test block then unblock leaves no rules for the targets."""
        reconciler = RuleReconciler(store, owner_group)
        reconciler.apply_block(executables)

        outcomes = reconciler.apply_unblock(executables)

        assert set(_statuses(outcomes)) == {OutcomeStatus.REMOVED}
        assert len(outcomes) == 6
        for target in executables:
            assert store.rules_for(target.program) == []

    def test_unblock_is_idempotent(self, store, owner_group, executables):
        """Test a second unblock finds nothing."""
        reconciler = RuleReconciler(store, owner_group)
        reconciler.apply_block(executables)
        reconciler.apply_unblock(executables)

        second = reconciler.apply_unblock(executables)

        assert _statuses(second) == [OutcomeStatus.NONE_FOUND] * len(executables)

    def test_unblock_scoped_to_owner_group(self, store, owner_group, executables):
        """Test rules from other groups survive by default."""
        target = executables[0]
        foreign = store.add(target.program, Direction.OUTBOUND, group="Vendor")
        store.add(target.program, Direction.INBOUND)
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_unblock([target])

        assert _statuses(outcomes) == [OutcomeStatus.REMOVED]
        assert store.rules == [foreign]

    def test_unblock_any_group(self, store, owner_group, executables):
        """Test any-group mode removes rules from every group."""
        target = executables[0]
        store.add(target.program, Direction.OUTBOUND, group="Vendor")
        store.add(target.program, Direction.INBOUND, group="")
        reconciler = RuleReconciler(store, owner_group, unblock_any_group=True)

        outcomes = reconciler.apply_unblock([target])

        assert _statuses(outcomes) == [OutcomeStatus.REMOVED, OutcomeStatus.REMOVED]
        assert store.rules == []

    def test_removal_failure_is_isolated(self, store, owner_group, executables):
        """Test a failed removal does not stop sibling removals."""
        target = executables[0]
        stuck = store.add(target.program, Direction.INBOUND)
        store.add(target.program, Direction.OUTBOUND)
        store.fail_remove.add(stuck.name)
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_unblock([target])

        assert _statuses(outcomes) == [OutcomeStatus.REMOVAL_FAILED, OutcomeStatus.REMOVED]
        assert store.rules == [stuck]

    def test_query_failure(self, store, owner_group, executables):
        """Test a failed lookup yields one QUERY_FAILED outcome."""
        store.fail_query.add(executables[0].program)
        reconciler = RuleReconciler(store, owner_group)

        outcomes = reconciler.apply_unblock(executables[:2])

        assert _statuses(outcomes) == [OutcomeStatus.QUERY_FAILED, OutcomeStatus.NONE_FOUND]

    @pytest.mark.parametrize("operation", ["query_program", "remove"])
    def test_unavailable_store_aborts_batch(self, store, owner_group, executables, operation):
        """Test an unreachable store stops unblocking instead of failing each rule."""
        store.add(executables[0].program, Direction.INBOUND)
        reconciler = RuleReconciler(store, owner_group)
        store.unavailable.add(operation)

        with pytest.raises(RuleStoreUnavailableException):
            reconciler.apply_unblock(executables)

        assert len(store.rules) == 1

    def test_single_rule_removal_is_not_public(self, store, owner_group, executables):
        """Test rules are removed only through apply_unblock."""
        store.add(executables[0].program, Direction.INBOUND)
        reconciler = RuleReconciler(store, owner_group)

        assert not hasattr(reconciler, "remove")
        assert _statuses(reconciler.apply_unblock([executables[0]])) == [OutcomeStatus.REMOVED]
