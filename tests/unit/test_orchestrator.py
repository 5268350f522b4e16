"""Tests for AttestationOrchestrator: ordering, aggregation and failure modes."""

from __future__ import annotations

import pytest

from contribattest.core.errors import (
    InsufficientFundsError,
    InvalidInputError,
    TransactionFailedError,
    TransientNetworkError,
)
from contribattest.core.orchestrator import FAILURE_POLICIES, AttestationOrchestrator
from contribattest.models.config import FailureMode
from contribattest.models.events import EventLevel
from contribattest.models.results import EMPTY_TX_REF
from tests.fakes import MIN_DEPOSIT, FakeLedgerGateway


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_new_contributors_on_existing_project(
        self, orchestrator, project, make_contributor, fast_policy
    ):
        orchestrator.ensurer.ensure_subject(project, fast_policy)

        summary = orchestrator.run(
            project,
            [make_contributor("ada"), make_contributor("bob")],
            FailureMode.ABORT,
            fast_policy,
        )

        c = d = MIN_DEPOSIT
        assert summary.total_cost == 2 * c + 2 * d
        assert summary.created_count == 2
        assert summary.updated_count == 0
        assert summary.contributor_count == 2
        assert summary.project_tx_ref is None
        assert len(summary.tx_refs) == 4

    def test_first_run_orders_transactions(
        self, orchestrator, project, make_contributor, fast_policy
    ):
        summary = orchestrator.run(
            project, [make_contributor("ada"), make_contributor("bob")],
            FailureMode.ABORT, fast_policy,
        )
        ada, bob = summary.results
        assert summary.tx_refs == [
            summary.project_tx_ref,
            ada.subject_result.tx_ref,
            ada.relationship_result.tx_ref,
            bob.subject_result.tx_ref,
            bob.relationship_result.tx_ref,
        ]
        assert summary.total_cost == 5 * MIN_DEPOSIT

    def test_rerun_updates_and_filters_sentinel(
        self, orchestrator, project, make_contributor, fast_policy
    ):
        contributors = [make_contributor("ada"), make_contributor("bob")]
        orchestrator.run(project, contributors, FailureMode.ABORT, fast_policy)
        summary = orchestrator.run(project, contributors, FailureMode.ABORT, fast_policy)

        assert summary.created_count == 0
        assert summary.updated_count == 2
        assert EMPTY_TX_REF not in summary.tx_refs
        # Only the two relationship top-ups sent transactions.
        assert len(summary.tx_refs) == 2
        assert summary.total_cost == 2 * MIN_DEPOSIT

    def test_results_follow_input_order(
        self, orchestrator, project, make_contributor, fast_policy
    ):
        handles = ["zed", "ada", "mia"]
        summary = orchestrator.run(
            project, [make_contributor(h) for h in handles], FailureMode.ABORT, fast_policy
        )
        assert [r.contributor.handle for r in summary.results] == handles

    def test_created_plus_updated_equals_successes(
        self, orchestrator, project, make_contributor, fast_policy
    ):
        orchestrator.run(project, [make_contributor("ada")], FailureMode.ABORT, fast_policy)
        summary = orchestrator.run(
            project,
            [make_contributor("ada"), make_contributor("bob")],
            FailureMode.CONTINUE,
            fast_policy,
        )
        assert summary.created_count == 1
        assert summary.updated_count == 1
        assert summary.created_count + summary.updated_count == summary.success_count

    def test_empty_contributor_list_still_ensures_project(
        self, orchestrator, gateway: FakeLedgerGateway, project, fast_policy
    ):
        summary = orchestrator.run(project, [], FailureMode.ABORT, fast_policy)
        assert summary.contributor_count == 0
        assert summary.results == []
        assert summary.project_subject_id == project.key
        assert gateway.call_count("create_subject") == 1

    def test_default_policy_and_mode(self, gateway, project, make_contributor):
        summary = AttestationOrchestrator(gateway).run(project, [make_contributor()])
        assert summary.success_count == 1


# ---------------------------------------------------------------------------
# Failure modes
# ---------------------------------------------------------------------------


class TestFailureModes:
    """Abort re-raises, Continue records, project failure is always fatal."""

    def _fail_second_relationship(self, gateway: FakeLedgerGateway) -> None:
        gateway.fail_next(
            "create_relationship", None, InvalidInputError("bad triple")
        )

    def test_abort_raises_without_summary(
        self, orchestrator, gateway, project, make_contributor, fast_policy, recorder
    ):
        self._fail_second_relationship(gateway)
        with pytest.raises(TransactionFailedError, match="bad triple"):
            orchestrator.run(
                project, [make_contributor("ada"), make_contributor("bob")],
                FailureMode.ABORT, fast_policy,
            )
        assert recorder.at_level(EventLevel.ERROR) == []

    def test_continue_records_failure(
        self, orchestrator, gateway, project, make_contributor, fast_policy, recorder
    ):
        self._fail_second_relationship(gateway)
        summary = orchestrator.run(
            project, [make_contributor("ada"), make_contributor("bob")],
            FailureMode.CONTINUE, fast_policy,
        )

        assert len(summary.results) == 2
        assert summary.results[0].success is True
        failed = summary.results[1]
        assert failed.success is False
        assert "bad triple" in failed.error_message
        assert failed.relationship_result is None
        assert summary.created_count == 1
        assert summary.failure_count == 1

        errors = recorder.at_level(EventLevel.ERROR)
        assert len(errors) == 1
        assert "@bob" in errors[0].message

    def test_continue_keeps_going_after_failure(
        self, orchestrator, gateway, project, make_contributor, fast_policy
    ):
        gateway.fail_next("create_relationship", InvalidInputError("first fails"))
        summary = orchestrator.run(
            project,
            [make_contributor("ada"), make_contributor("bob"), make_contributor("cy")],
            FailureMode.CONTINUE,
            fast_policy,
        )
        assert [r.success for r in summary.results] == [False, True, True]
        assert summary.created_count == 2

    def test_failed_contributor_subject_not_undone(
        self, orchestrator, gateway, project, make_contributor, fast_policy
    ):
        self._fail_second_relationship(gateway)
        bob = make_contributor("bob")
        orchestrator.run(
            project, [make_contributor("ada"), bob], FailureMode.CONTINUE, fast_policy
        )
        assert bob.to_subject().key in gateway.subjects

    @pytest.mark.parametrize("mode", [FailureMode.ABORT, FailureMode.CONTINUE])
    def test_project_failure_is_fatal(
        self, orchestrator, gateway, project, make_contributor, fast_policy, mode
    ):
        gateway.fail_next("create_subject", InvalidInputError("bad project"))
        with pytest.raises(TransactionFailedError):
            orchestrator.run(project, [make_contributor()], mode, fast_policy)
        assert gateway.call_count("create_relationship") == 0

    def test_insufficient_funds_aborts_with_context(
        self, retry_executor, observer, project, make_contributor, fast_policy
    ):
        poor = FakeLedgerGateway(balance=MIN_DEPOSIT)
        orchestrator = AttestationOrchestrator(poor, observer, retry=retry_executor)
        with pytest.raises(TransactionFailedError) as exc_info:
            orchestrator.run(project, [make_contributor()], FailureMode.ABORT, fast_policy)
        assert isinstance(exc_info.value.__cause__, InsufficientFundsError)
        assert poor.call_count("create_relationship") == 0

    def test_transient_failure_retried_within_contributor(
        self, orchestrator, gateway, project, make_contributor, fast_policy, recorder
    ):
        gateway.fail_next("create_relationship", TransientNetworkError("blip"))
        summary = orchestrator.run(
            project, [make_contributor()], FailureMode.ABORT, fast_policy
        )
        assert summary.results[0].success is True
        assert len(recorder.from_source("retry")) == 1

    def test_mode_accepts_raw_value(self, orchestrator, project, fast_policy):
        summary = orchestrator.run(project, [], "warn", fast_policy)
        assert summary.contributor_count == 0

    def test_policy_table_covers_every_mode(self):
        assert set(FAILURE_POLICIES) == set(FailureMode)
