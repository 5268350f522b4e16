"""Attestation orchestrator: the central coordinator for a contributor attestation run.

Ensures the project subject once, then every contributor's subject and
contributor-to-project relationship in input order, and folds the outcomes
into one ``AttestationSummary``.

The orchestrator is the only layer that decides whether an error aborts the
run.  The ensurer and retry executor below it never swallow a fatal error.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from contribattest.core.ensurer import ResourceEnsurer
from contribattest.core.errors import describe_error
from contribattest.core.retry import RetryExecutor
from contribattest.gateway.base import LedgerGateway
from contribattest.models.config import FailureMode, RetryPolicy
from contribattest.models.descriptors import ContributorDescriptor, SubjectDescriptor
from contribattest.models.results import (
    AttestationSummary,
    ContributorOutcome,
    ResourceOutcome,
)
from contribattest.routing.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Failure policy
# ---------------------------------------------------------------------------

FailurePolicy = Callable[
    [ContributorDescriptor, Exception, EventDispatcher], ContributorOutcome
]


def _abort_on_failure(
    contributor: ContributorDescriptor, error: Exception, observer: EventDispatcher
) -> ContributorOutcome:
    raise error


def _continue_on_failure(
    contributor: ContributorDescriptor, error: Exception, observer: EventDispatcher
) -> ContributorOutcome:
    message = describe_error(error)
    observer.error(
        f"Failed to process contributor {contributor.label}: {message}",
        source="orchestrator",
        contributor=contributor.contact_key,
        error=message,
    )
    return ContributorOutcome(
        contributor=contributor, success=False, error_message=message
    )


FAILURE_POLICIES: dict[FailureMode, FailurePolicy] = {
    FailureMode.ABORT: _abort_on_failure,
    FailureMode.CONTINUE: _continue_on_failure,
}


class _RunTotals:
    """Mutable accumulator; frozen into the summary at the end of the run."""

    def __init__(self) -> None:
        self.tx_refs: list[str] = []
        self.total_cost = 0
        self.created = 0
        self.updated = 0
        self.results: list[ContributorOutcome] = []

    def add_resource(self, outcome: ResourceOutcome) -> None:
        if outcome.has_transaction:
            self.tx_refs.append(outcome.tx_ref)
        self.total_cost += outcome.cost


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class AttestationOrchestrator:
    """Runs one attestation batch against a ledger gateway.

    Parameters
    ----------
    gateway:
        Ledger the attestations are written to.
    observer:
        Dispatcher for progress, retry and failure observations.  Defaults
        to a logging-only dispatcher.
    retry:
        Executor shared by every ensure call.  Built on *observer* if not
        provided.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        observer: EventDispatcher | None = None,
        *,
        retry: RetryExecutor | None = None,
    ) -> None:
        self._observer = observer or EventDispatcher.with_logging()
        self._retry = retry or RetryExecutor(self._observer)
        self.ensurer = ResourceEnsurer(gateway, self._retry, self._observer)

    def run(
        self,
        project: SubjectDescriptor,
        contributors: Sequence[ContributorDescriptor],
        failure_mode: FailureMode = FailureMode.ABORT,
        retry_policy: RetryPolicy | None = None,
    ) -> AttestationSummary:
        """Attest every contributor against *project*.

        Raises
        ------
        AttestationError
            When the project subject cannot be ensured (any mode), or the
            first contributor failure under ``FailureMode.ABORT``.
        """
        policy = retry_policy or RetryPolicy()
        on_failure = FAILURE_POLICIES[FailureMode(failure_mode)]
        totals = _RunTotals()

        self._observer.info(
            f"Ensuring project subject: {project.name}",
            source="orchestrator",
            url=project.url,
        )
        project_outcome = self.ensurer.ensure_subject(project, policy)
        totals.add_resource(project_outcome)
        self._observer.info(
            f"Project subject: {project_outcome.id}",
            source="orchestrator",
            subject_id=project_outcome.id,
            existed_before=project_outcome.existed_before,
        )

        total = len(contributors)
        for index, contributor in enumerate(contributors, start=1):
            self._observer.info(
                f"Processing contributor {index}/{total}: {contributor.label}",
                source="orchestrator",
                contributor=contributor.contact_key,
            )
            try:
                subject = self.ensurer.ensure_subject(contributor.to_subject(), policy)
                relationship = self.ensurer.ensure_relationship(
                    subject.id, project_outcome.id, policy
                )
            except Exception as exc:
                totals.results.append(on_failure(contributor, exc, self._observer))
                continue

            totals.add_resource(subject)
            totals.add_resource(relationship)
            if relationship.existed_before:
                totals.updated += 1
            else:
                totals.created += 1
            totals.results.append(
                ContributorOutcome(
                    contributor=contributor,
                    subject_result=subject,
                    relationship_result=relationship,
                    success=True,
                )
            )
            self._observer.info(
                f"Attested {contributor.label} "
                f"({'updated' if relationship.existed_before else 'created'})",
                source="orchestrator",
                contributor=contributor.contact_key,
                relationship_id=relationship.id,
            )

        summary = AttestationSummary(
            project_subject_id=project_outcome.id,
            project_tx_ref=project_outcome.tx_ref if project_outcome.has_transaction else None,
            contributor_count=total,
            created_count=totals.created,
            updated_count=totals.updated,
            tx_refs=totals.tx_refs,
            total_cost=totals.total_cost,
            results=totals.results,
        )
        self._observer.info(
            f"Attestation complete: {summary.created_count} created, "
            f"{summary.updated_count} updated, {summary.failure_count} failed",
            source="orchestrator",
            total_cost=summary.total_cost,
            transactions=len(summary.tx_refs),
        )
        return summary
