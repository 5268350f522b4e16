"""Ledger gateway protocol: the boundary between the core and the ledger.

The core depends on this interface only.  Key management, signing, block
production and transport timeouts are the implementation's business; the
core sees result objects and classified errors.

Every operation may raise ``TransientNetworkError`` on transport failure.
``await_confirmation`` raises ``TransactionFailedError`` when the wait
errors or never reaches the configured confirmation depth.
"""

from __future__ import annotations

import abc
import logging
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from contribattest.core.errors import InsufficientFundsError
from contribattest.models.config import NetworkConfig
from contribattest.models.descriptors import RelationshipDescriptor, SubjectDescriptor

logger = logging.getLogger(__name__)


# =========================================================================
# Result types
# =========================================================================


class WriteResult(BaseModel):
    """Result of a submitted (not yet confirmed) ledger write.

    Attributes:
        id: Id of the resource written (created or staked).
        tx_ref: Transaction reference to wait on.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tx_ref: str


class Confirmation(BaseModel):
    """Result of waiting for a transaction.

    Attributes:
        tx_ref: The transaction waited on.
        confirmed: Whether the configured depth was reached.
        block_ref: Block that included the transaction, if known.
    """

    model_config = ConfigDict(frozen=True)

    tx_ref: str
    confirmed: bool
    block_ref: int | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerGateway(Protocol):
    """Interface for ledger operations consumed by the attestation core."""

    @property
    def min_deposit(self) -> int:
        """Deposit attached to every create or top-up, in the smallest unit."""
        ...

    def address(self) -> str:
        """Identity of the funding account."""
        ...

    def balance(self) -> int:
        """Current balance of the funding account."""
        ...

    def assert_sufficient_balance(self, required: int) -> None:
        """Raise ``InsufficientFundsError`` if ``balance() < required``."""
        ...

    def find_subject(self, key: str) -> str | None:
        ...

    def find_relationship(
        self, subject_id: str, predicate_id: str, object_id: str
    ) -> str | None:
        ...

    def create_subject(self, descriptor: SubjectDescriptor, stake: int) -> WriteResult:
        ...

    def create_relationship(
        self, descriptor: RelationshipDescriptor, stake: int
    ) -> WriteResult:
        ...

    def add_stake(self, relationship_id: str, amount: int) -> WriteResult:
        ...

    def await_confirmation(self, tx_ref: str) -> Confirmation:
        ...


# =========================================================================
# Shared base
# =========================================================================


class BaseLedgerGateway(abc.ABC):
    """Common behaviour for concrete gateways.

    Subclasses implement the ledger reads and writes; the funds check and
    network parameters live here.

    Parameters
    ----------
    network:
        Network configuration (minimum deposit, confirmation depth).
    """

    def __init__(self, network: NetworkConfig) -> None:
        self._network = network

    @property
    def network(self) -> NetworkConfig:
        return self._network

    @property
    def min_deposit(self) -> int:
        return self._network.min_deposit

    @property
    def confirmations(self) -> int:
        return self._network.confirmations

    def assert_sufficient_balance(self, required: int) -> None:
        available = self.balance()
        if available < required:
            raise InsufficientFundsError(
                f"Insufficient balance. Required: {required} wei, "
                f"Available: {available} wei",
                required=required,
                available=available,
            )
        logger.debug("Balance check passed: %d >= %d", available, required)

    @abc.abstractmethod
    def address(self) -> str: ...

    @abc.abstractmethod
    def balance(self) -> int: ...

    @abc.abstractmethod
    def find_subject(self, key: str) -> str | None: ...

    @abc.abstractmethod
    def find_relationship(
        self, subject_id: str, predicate_id: str, object_id: str
    ) -> str | None: ...

    @abc.abstractmethod
    def create_subject(self, descriptor: SubjectDescriptor, stake: int) -> WriteResult: ...

    @abc.abstractmethod
    def create_relationship(
        self, descriptor: RelationshipDescriptor, stake: int
    ) -> WriteResult: ...

    @abc.abstractmethod
    def add_stake(self, relationship_id: str, amount: int) -> WriteResult: ...

    @abc.abstractmethod
    def await_confirmation(self, tx_ref: str) -> Confirmation: ...
