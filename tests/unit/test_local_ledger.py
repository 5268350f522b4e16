"""Tests for the SQLite LocalLedgerGateway."""

from __future__ import annotations

import sqlite3

import pytest

from contribattest.core.errors import (
    InsufficientFundsError,
    InvalidInputError,
    TransactionFailedError,
    TransientNetworkError,
)
from contribattest.gateway.base import LedgerGateway
from contribattest.gateway.local_ledger import LocalLedgerGateway, derive_address
from contribattest.models.config import NETWORK_DEFAULTS, NetworkName
from contribattest.models.descriptors import RelationshipDescriptor, SubjectDescriptor
from tests.fakes import MIN_DEPOSIT, TEST_PRIVATE_KEY


@pytest.fixture
def subject() -> SubjectDescriptor:
    return SubjectDescriptor(
        name="org/repo", description="Repository: repo", url="https://github.com/org/repo"
    )


@pytest.fixture
def contributor_subject() -> SubjectDescriptor:
    return SubjectDescriptor(
        name="Ada", description="Contributor: ada", url="https://github.com/ada"
    )


def _link(ledger, a: SubjectDescriptor, b: SubjectDescriptor) -> RelationshipDescriptor:
    ledger.create_subject(a, MIN_DEPOSIT)
    ledger.create_subject(b, MIN_DEPOSIT)
    return RelationshipDescriptor(subject_id=b.key, object_id=a.key)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class TestAccounts:
    def test_satisfies_protocol(self, local_ledger):
        assert isinstance(local_ledger, LedgerGateway)

    def test_address_derived_from_key(self, local_ledger):
        assert local_ledger.address() == derive_address(TEST_PRIVATE_KEY)
        assert local_ledger.address().startswith("0x")
        assert len(local_ledger.address()) == 42

    def test_fund_and_balance(self, local_ledger):
        assert local_ledger.balance() == 10**20
        assert local_ledger.fund(5) == 10**20 + 5

    def test_large_balances_survive(self, local_ledger):
        local_ledger.fund(10**30)
        assert local_ledger.balance() == 10**30 + 10**20

    def test_fund_rejects_non_positive(self, local_ledger):
        with pytest.raises(InvalidInputError):
            local_ledger.fund(0)

    def test_assert_sufficient_balance(self, local_ledger):
        local_ledger.assert_sufficient_balance(10**20)
        with pytest.raises(InsufficientFundsError) as exc_info:
            local_ledger.assert_sufficient_balance(10**20 + 1)
        assert exc_info.value.available == 10**20

    def test_min_deposit_and_confirmations(self, local_ledger):
        assert local_ledger.min_deposit == MIN_DEPOSIT
        assert local_ledger.confirmations == 1

    def test_persists_across_connections(self, tmp_path, subject):
        network = NETWORK_DEFAULTS[NetworkName.TESTNET]
        with LocalLedgerGateway(tmp_path / "l.db", TEST_PRIVATE_KEY, network) as first:
            first.fund(10**18)
            first.create_subject(subject, MIN_DEPOSIT)
        with LocalLedgerGateway(tmp_path / "l.db", TEST_PRIVATE_KEY, network) as second:
            assert second.find_subject(subject.key) == subject.key
            assert second.balance() == 10**18 - MIN_DEPOSIT

    def test_in_memory(self, subject):
        network = NETWORK_DEFAULTS[NetworkName.TESTNET]
        with LocalLedgerGateway(":memory:", TEST_PRIVATE_KEY, network) as ledger:
            ledger.fund(10**18)
            ledger.create_subject(subject, MIN_DEPOSIT)
            assert ledger.find_subject(subject.key) == subject.key


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


class TestWrites:
    def test_create_subject_is_content_addressed(self, local_ledger, subject):
        result = local_ledger.create_subject(subject, MIN_DEPOSIT)
        assert result.id == subject.key
        assert local_ledger.find_subject(subject.key) == subject.key
        assert local_ledger.balance() == 10**20 - MIN_DEPOSIT

    def test_duplicate_subject_reverts(self, local_ledger, subject):
        local_ledger.create_subject(subject, MIN_DEPOSIT)
        with pytest.raises(TransactionFailedError, match="already exists"):
            local_ledger.create_subject(subject, MIN_DEPOSIT)
        # The reverted write spent nothing.
        assert local_ledger.balance() == 10**20 - MIN_DEPOSIT

    def test_relationship_requires_known_subjects(self, local_ledger):
        rel = RelationshipDescriptor(subject_id="0xmissing", object_id="0xother")
        with pytest.raises(TransactionFailedError, match="Unknown subject"):
            local_ledger.create_relationship(rel, MIN_DEPOSIT)

    def test_create_and_find_relationship(self, local_ledger, subject, contributor_subject):
        rel = _link(local_ledger, subject, contributor_subject)
        result = local_ledger.create_relationship(rel, MIN_DEPOSIT)
        assert result.id == rel.key
        assert local_ledger.find_relationship(*rel.as_triple()) == rel.key
        with pytest.raises(TransactionFailedError):
            local_ledger.create_relationship(rel, MIN_DEPOSIT)

    def test_add_stake_accumulates(self, local_ledger, subject, contributor_subject):
        rel = _link(local_ledger, subject, contributor_subject)
        local_ledger.create_relationship(rel, MIN_DEPOSIT)
        local_ledger.add_stake(rel.key, MIN_DEPOSIT)
        assert local_ledger.stake_total(rel.key) == 2 * MIN_DEPOSIT

    def test_add_stake_unknown_relationship(self, local_ledger):
        with pytest.raises(TransactionFailedError, match="Unknown relationship"):
            local_ledger.add_stake("0xnope", MIN_DEPOSIT)

    def test_write_without_funds_rolls_back(self, tmp_path, subject):
        network = NETWORK_DEFAULTS[NetworkName.TESTNET]
        with LocalLedgerGateway(tmp_path / "poor.db", TEST_PRIVATE_KEY, network) as ledger:
            with pytest.raises(InsufficientFundsError):
                ledger.create_subject(subject, MIN_DEPOSIT)
            assert ledger.find_subject(subject.key) is None

    def test_distinct_transaction_refs(self, local_ledger, subject, contributor_subject):
        a = local_ledger.create_subject(subject, MIN_DEPOSIT)
        b = local_ledger.create_subject(contributor_subject, MIN_DEPOSIT)
        assert a.tx_ref != b.tx_ref
        assert local_ledger.head_block() == 2


# ---------------------------------------------------------------------------
# Confirmation and queries
# ---------------------------------------------------------------------------


class TestConfirmation:
    def test_confirm_known_transaction(self, local_ledger, subject):
        write = local_ledger.create_subject(subject, MIN_DEPOSIT)
        confirmation = local_ledger.await_confirmation(write.tx_ref)
        assert confirmation.confirmed is True
        assert confirmation.block_ref == 1

    def test_confirm_unknown_transaction(self, local_ledger):
        with pytest.raises(TransactionFailedError) as exc_info:
            local_ledger.await_confirmation("0xunknown")
        assert exc_info.value.tx_ref == "0xunknown"

    def test_depth_advances_head(self, tmp_path, subject):
        network = NETWORK_DEFAULTS[NetworkName.MAINNET]
        with LocalLedgerGateway(tmp_path / "main.db", TEST_PRIVATE_KEY, network) as ledger:
            ledger.fund(10**18)
            write = ledger.create_subject(subject, network.min_deposit)
            ledger.await_confirmation(write.tx_ref)
            assert ledger.head_block() == 2

    def test_listings(self, local_ledger, subject, contributor_subject):
        rel = _link(local_ledger, subject, contributor_subject)
        local_ledger.create_relationship(rel, MIN_DEPOSIT)
        subjects = local_ledger.list_subjects()
        assert [s["name"] for s in subjects] == ["org/repo", "Ada"]
        assert subjects[0]["stake"] == MIN_DEPOSIT
        relationships = local_ledger.list_relationships()
        assert relationships[0]["subject_id"] == contributor_subject.key
        assert relationships[0]["object_id"] == subject.key


class TestStorageFaults:
    def test_closed_connection_is_transient(self, tmp_path):
        network = NETWORK_DEFAULTS[NetworkName.TESTNET]
        ledger = LocalLedgerGateway(tmp_path / "c.db", TEST_PRIVATE_KEY, network)
        ledger.close()
        with pytest.raises(TransientNetworkError):
            ledger.balance()

    def test_locked_database_is_transient(self, tmp_path, monkeypatch):
        network = NETWORK_DEFAULTS[NetworkName.TESTNET]
        ledger = LocalLedgerGateway(tmp_path / "lock.db", TEST_PRIVATE_KEY, network)

        class _LockedConnection:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def execute(self, *args):
                raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(ledger, "_db", _LockedConnection())
        with pytest.raises(TransientNetworkError, match="database is locked"):
            ledger.find_subject("0xabc")

    def test_empty_credential_rejected(self):
        with pytest.raises(InvalidInputError):
            derive_address("")
