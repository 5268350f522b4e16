"""Outcome models produced by an attestation run.

Every model here is built fresh per run and discarded once the summary has
been returned; durable state lives only on the ledger.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, model_validator

from contribattest.models.descriptors import ContributorDescriptor

# Transaction reference reported when no transaction was sent.
EMPTY_TX_REF = "0x0"


class ResourceOutcome(BaseModel):
    """Result of ensuring one subject or relationship resource."""

    model_config = ConfigDict(frozen=True)

    id: str
    stake_id: str
    tx_ref: str = EMPTY_TX_REF
    cost: int = Field(default=0, ge=0)
    existed_before: bool = False

    @model_validator(mode="after")
    def _no_op_reports_no_transaction(self) -> ResourceOutcome:
        # An existing resource either costs nothing and sent nothing, or was
        # topped up and carries the top-up transaction.
        if self.existed_before and self.cost == 0 and self.has_transaction:
            raise ValueError("a no-op outcome cannot carry a transaction")
        if not self.existed_before and not self.has_transaction:
            raise ValueError("a created resource must carry a transaction")
        return self

    @property
    def has_transaction(self) -> bool:
        return bool(self.tx_ref) and self.tx_ref != EMPTY_TX_REF


class ContributorOutcome(BaseModel):
    """Per-contributor result, in input order inside the summary."""

    model_config = ConfigDict(frozen=True)

    contributor: ContributorDescriptor
    subject_result: ResourceOutcome | None = None
    relationship_result: ResourceOutcome | None = None
    success: bool
    error_message: str | None = None


class AttestationSummary(BaseModel):
    """Aggregated outcome of one orchestration run.

    Invariants:
    - ``created_count + updated_count`` equals the number of successes
    - ``total_cost`` is the sum of every reported resource cost
    - ``tx_refs`` never contains ``EMPTY_TX_REF``
    """

    model_config = ConfigDict(frozen=True)

    project_subject_id: str
    project_tx_ref: str | None = None
    contributor_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    tx_refs: list[str] = []
    total_cost: int = 0
    results: list[ContributorOutcome] = []

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_outputs(self) -> dict[str, str]:
        """Flatten the summary into string outputs (action-output style)."""
        return {
            "project-atom-id": self.project_subject_id,
            "contributor-count": str(self.contributor_count),
            "attestations-created": str(self.created_count),
            "attestations-updated": str(self.updated_count),
            "transaction-hashes": json.dumps(self.tx_refs),
            "total-cost": str(self.total_cost),
        }
