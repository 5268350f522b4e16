"""ResourceEnsurer: idempotent "ensure exists, create or top up" for ledger resources.

One generic routine drives both resource kinds.  A kind supplies only its
capability set:

- ``lookup``      find the resource by identity key
- ``create_new``  submit the creating write with the minimum deposit
- ``on_found``    handle an existing resource (no-op or stake top-up)

States per call::

    CHECKING -> FOUND -> DONE                       (subject)
    CHECKING -> FOUND -> DEPOSITING -> DONE         (relationship)
    CHECKING -> NOT_FOUND -> CREATING -> CONFIRMING -> DONE

The whole sequence runs as ONE operation under the retry executor, so a
transient failure restarts from the lookup.  A write that landed before the
failure is then found on the next attempt instead of being created twice.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict

from contribattest.core.errors import (
    TransactionFailedError,
    describe_error,
    is_retryable,
)
from contribattest.core.retry import RetryExecutor
from contribattest.gateway.base import LedgerGateway, WriteResult
from contribattest.models.config import RetryPolicy
from contribattest.models.descriptors import (
    WAS_ASSOCIATED_WITH_PREDICATE_ID,
    RelationshipDescriptor,
    SubjectDescriptor,
)
from contribattest.models.results import EMPTY_TX_REF, ResourceOutcome
from contribattest.routing.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    SUBJECT = "subject"
    RELATIONSHIP = "relationship"


class EnsureState(str, Enum):
    """Progress of a single ensure call."""

    CHECKING = "checking"
    FOUND = "found"
    NOT_FOUND = "not_found"
    DEPOSITING = "depositing"
    CREATING = "creating"
    CONFIRMING = "confirming"
    DONE = "done"


class ResourceCapabilities(BaseModel):
    """What one resource kind contributes to ``ensure_resource``.

    ``lookup`` returns the existing id or ``None``.  ``create_new`` returns
    the submitted write; the caller confirms it.  ``on_found`` receives the
    existing id and returns the final outcome, confirming any write it
    makes itself.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    label: str  # human-readable name for observations
    lookup: Callable[[], str | None]
    create_new: Callable[[], WriteResult]
    on_found: Callable[[str], ResourceOutcome]


class ResourceEnsurer:
    """Ensures subjects and relationships exist exactly once on the ledger.

    Parameters
    ----------
    gateway:
        Ledger the resources live on.
    retry:
        Executor wrapping each ensure call.
    observer:
        Dispatcher receiving progress and degradation observations.
    predicate_id:
        Predicate of every relationship this ensurer creates.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        retry: RetryExecutor,
        observer: EventDispatcher,
        *,
        predicate_id: str = WAS_ASSOCIATED_WITH_PREDICATE_ID,
    ) -> None:
        self._gateway = gateway
        self._retry = retry
        self._observer = observer
        self._predicate_id = predicate_id

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def ensure_subject(
        self, descriptor: SubjectDescriptor, policy: RetryPolicy
    ) -> ResourceOutcome:
        """Find the subject by URL key or create it.  Existing subjects cost nothing."""
        gateway = self._gateway
        key = descriptor.key

        def _found(subject_id: str) -> ResourceOutcome:
            return ResourceOutcome(
                id=subject_id,
                stake_id=subject_id,
                tx_ref=EMPTY_TX_REF,
                cost=0,
                existed_before=True,
            )

        capabilities = ResourceCapabilities(
            kind=ResourceKind.SUBJECT,
            label=descriptor.name,
            lookup=lambda: gateway.find_subject(key),
            create_new=lambda: gateway.create_subject(descriptor, gateway.min_deposit),
            on_found=_found,
        )
        return self._retry.execute(
            lambda: self.ensure_resource(capabilities), policy
        )

    def ensure_relationship(
        self, subject_id: str, object_id: str, policy: RetryPolicy
    ) -> ResourceOutcome:
        """Find the relationship triple and top up its stake, or create it."""
        gateway = self._gateway
        descriptor = RelationshipDescriptor(
            subject_id=subject_id,
            predicate_id=self._predicate_id,
            object_id=object_id,
        )

        def _top_up(relationship_id: str) -> ResourceOutcome:
            amount = gateway.min_deposit
            self._trace(ResourceKind.RELATIONSHIP, relationship_id, EnsureState.DEPOSITING)
            self._observer.info(
                f"Relationship exists, adding deposit of {amount} to {relationship_id}",
                source="ensurer",
                kind=ResourceKind.RELATIONSHIP.value,
                resource_id=relationship_id,
                amount=amount,
            )
            with _fatal_as_failed_transaction(f"add deposit to {relationship_id}"):
                gateway.assert_sufficient_balance(amount)
                write = gateway.add_stake(relationship_id, amount)
                self._confirm(write.tx_ref)
            return ResourceOutcome(
                id=relationship_id,
                stake_id=relationship_id,
                tx_ref=write.tx_ref,
                cost=amount,
                existed_before=True,
            )

        capabilities = ResourceCapabilities(
            kind=ResourceKind.RELATIONSHIP,
            label=f"{subject_id} -> {object_id}",
            lookup=lambda: gateway.find_relationship(*descriptor.as_triple()),
            create_new=lambda: gateway.create_relationship(descriptor, gateway.min_deposit),
            on_found=_top_up,
        )
        return self._retry.execute(
            lambda: self.ensure_resource(capabilities), policy
        )

    # ------------------------------------------------------------------
    # Generic routine
    # ------------------------------------------------------------------

    def ensure_resource(self, capabilities: ResourceCapabilities) -> ResourceOutcome:
        """Run one CHECKING-to-DONE pass for *capabilities*.

        Not retried here; the entry points hand this whole pass to the
        retry executor.

        Raises
        ------
        TransactionFailedError
            The funding account cannot cover the deposit, or a write
            reverted, failed fatally or never confirmed.  The underlying
            error is the ``__cause__``.
        """
        kind = capabilities.kind
        self._trace(kind, capabilities.label, EnsureState.CHECKING)
        existing_id = self._safe_lookup(capabilities)

        if existing_id is not None:
            self._trace(kind, existing_id, EnsureState.FOUND)
            self._observer.info(
                f"{kind.value.capitalize()} already exists: {existing_id}",
                source="ensurer",
                kind=kind.value,
                resource_id=existing_id,
            )
            outcome = capabilities.on_found(existing_id)
            self._trace(kind, existing_id, EnsureState.DONE)
            return outcome

        self._trace(kind, capabilities.label, EnsureState.NOT_FOUND)
        amount = self._gateway.min_deposit
        self._observer.info(
            f"Creating {kind.value} {capabilities.label}",
            source="ensurer",
            kind=kind.value,
            amount=amount,
        )
        with _fatal_as_failed_transaction(f"create {kind.value} {capabilities.label}"):
            self._gateway.assert_sufficient_balance(amount)
            self._trace(kind, capabilities.label, EnsureState.CREATING)
            write = capabilities.create_new()
            self._trace(kind, write.id, EnsureState.CONFIRMING)
            self._confirm(write.tx_ref)

        self._observer.info(
            f"Created {kind.value} {write.id}",
            source="ensurer",
            kind=kind.value,
            resource_id=write.id,
            tx_ref=write.tx_ref,
            cost=amount,
        )
        self._trace(kind, write.id, EnsureState.DONE)
        return ResourceOutcome(
            id=write.id,
            stake_id=write.id,
            tx_ref=write.tx_ref,
            cost=amount,
            existed_before=False,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _safe_lookup(self, capabilities: ResourceCapabilities) -> str | None:
        # A failed lookup degrades to "not found"; the ledger rejects a
        # duplicate create if the resource did exist.
        try:
            return capabilities.lookup()
        except Exception as exc:  # noqa: BLE001
            self._observer.warning(
                f"Lookup failed for {capabilities.kind.value} "
                f"{capabilities.label}: {describe_error(exc)}",
                source="ensurer",
                kind=capabilities.kind.value,
                error=describe_error(exc),
            )
            return None

    def _confirm(self, tx_ref: str) -> None:
        confirmation = self._gateway.await_confirmation(tx_ref)
        if not confirmation.confirmed:
            raise TransactionFailedError(
                f"Transaction {tx_ref} did not reach the required confirmations",
                tx_ref=tx_ref,
            )

    def _trace(self, kind: ResourceKind, ref: str, state: EnsureState) -> None:
        logger.debug("%s %s: %s", kind.value, ref, state.value)


@contextmanager
def _fatal_as_failed_transaction(context: str) -> Iterator[None]:
    """Re-raise fatal write errors as ``TransactionFailedError`` with *context*.

    Funding shortfalls are wrapped too; the original error stays the
    ``__cause__``.  Retryable errors pass through unchanged so the retry
    executor still sees them.
    """
    try:
        yield
    except Exception as exc:
        if is_retryable(exc):
            raise
        tx_ref = exc.tx_ref if isinstance(exc, TransactionFailedError) else None
        raise TransactionFailedError(
            f"Failed to {context}: {describe_error(exc)}", tx_ref=tx_ref
        ) from exc
