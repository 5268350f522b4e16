"""Content-addressed local ledger backed by SQLite.

A self-contained stand-in for the remote ledger, used for local runs and
integration tests.  It keeps the properties the attestation core relies on:

- Content-addressed: subject ids are their URL keys, relationship ids the
  hash of their triple.
- Duplicate-detecting: creating an existing resource reverts.
- Funded: every write debits the funding account; balances never go negative.
- Sequenced: each write is a transaction with a per-account nonce, mined in
  its own block.

Amounts are stored as decimal TEXT because deposits in the smallest unit
overflow SQLite's 64-bit integers.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from contribattest.core.errors import (
    InsufficientFundsError,
    InvalidInputError,
    TransactionFailedError,
    TransientNetworkError,
)
from contribattest.core.hasher import ledger_hash, sha256_hex
from contribattest.gateway.base import BaseLedgerGateway, Confirmation, WriteResult
from contribattest.models.config import NetworkConfig
from contribattest.models.descriptors import RelationshipDescriptor, SubjectDescriptor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    address     TEXT PRIMARY KEY,
    balance     TEXT NOT NULL DEFAULT '0',
    nonce       INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS subjects (
    subject_id  TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    description TEXT NOT NULL,
    url         TEXT NOT NULL,
    image       TEXT,
    creator     TEXT NOT NULL,
    created_tx  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS relationships (
    relationship_id TEXT PRIMARY KEY,
    subject_id      TEXT NOT NULL,
    predicate_id    TEXT NOT NULL,
    object_id       TEXT NOT NULL,
    creator         TEXT NOT NULL,
    created_tx      TEXT NOT NULL,
    UNIQUE (subject_id, predicate_id, object_id)
);
CREATE TABLE IF NOT EXISTS stakes (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    resource_id TEXT NOT NULL,
    depositor   TEXT NOT NULL,
    amount      TEXT NOT NULL,
    tx_ref      TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS transactions (
    tx_ref       TEXT PRIMARY KEY,
    sender       TEXT NOT NULL,
    nonce        INTEGER NOT NULL,
    kind         TEXT NOT NULL,
    resource_id  TEXT NOT NULL,
    amount       TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    UNIQUE (sender, nonce)
);
CREATE TABLE IF NOT EXISTS chain (
    id   INTEGER PRIMARY KEY CHECK (id = 1),
    head INTEGER NOT NULL
);
INSERT OR IGNORE INTO chain (id, head) VALUES (1, 0);
CREATE INDEX IF NOT EXISTS idx_stakes_resource ON stakes(resource_id);
"""


def derive_address(credential: str) -> str:
    """Derive a local account address from a funding credential.

    Local addressing only: the last 20 bytes of SHA-256 over the credential.
    """
    if not credential:
        raise InvalidInputError("A funding credential is required")
    return f"0x{sha256_hex(credential.strip().lower().encode('utf-8'))[-40:]}"


class LocalLedgerGateway(BaseLedgerGateway):
    """SQLite implementation of ``LedgerGateway``.

    Parameters
    ----------
    db_path:
        SQLite database file, created with its parent directory if missing.
        ``":memory:"`` keeps the ledger in memory for the gateway's lifetime.
    credential:
        Funding credential; only its derived address is kept.
    network:
        Network parameters (minimum deposit, confirmation depth).
    """

    def __init__(
        self,
        db_path: Path | str,
        credential: str,
        network: NetworkConfig,
    ) -> None:
        super().__init__(network)
        self._address = derive_address(credential)
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db: sqlite3.Connection | None = sqlite3.connect(
                self._db_path, check_same_thread=False
            )
            self._db.executescript(_SCHEMA)
            self._db.execute(
                "INSERT OR IGNORE INTO accounts (address) VALUES (?)",
                (self._address,),
            )
            self._db.commit()
        except sqlite3.OperationalError as exc:
            raise TransientNetworkError(
                f"Failed to open local ledger at {self._db_path}: {exc}"
            ) from exc
        logger.info(
            "LocalLedgerGateway: %s on %s (account %s)",
            self._db_path,
            network.name.value,
            self._address,
        )

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._db is None:
            raise TransientNetworkError("Local ledger connection is closed")
        return self._db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run one atomic unit of work; storage faults surface as transient."""
        conn = self._conn
        try:
            with conn:
                yield conn
        except sqlite3.OperationalError as exc:
            raise TransientNetworkError(f"{operation} failed: {exc}") from exc

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    def __enter__(self) -> LocalLedgerGateway:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"LocalLedgerGateway(db_path={self._db_path!r}, "
            f"network={self.network.name.value}, address={self._address})"
        )

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def address(self) -> str:
        return self._address

    def balance(self) -> int:
        with self._guard("balance") as conn:
            return self._balance_of(conn, self._address)

    def fund(self, amount: int) -> int:
        """Credit the funding account and return the new balance."""
        if amount <= 0:
            raise InvalidInputError("Funding amount must be greater than 0")
        with self._guard("fund") as conn:
            new_balance = self._balance_of(conn, self._address) + amount
            conn.execute(
                "UPDATE accounts SET balance = ? WHERE address = ?",
                (str(new_balance), self._address),
            )
        logger.info("Funded %s with %d wei (balance %d)", self._address, amount, new_balance)
        return new_balance

    @staticmethod
    def _balance_of(conn: sqlite3.Connection, address: str) -> int:
        row = conn.execute(
            "SELECT balance FROM accounts WHERE address = ?", (address,)
        ).fetchone()
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_subject(self, key: str) -> str | None:
        with self._guard("find_subject") as conn:
            row = conn.execute(
                "SELECT subject_id FROM subjects WHERE subject_id = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def find_relationship(
        self, subject_id: str, predicate_id: str, object_id: str
    ) -> str | None:
        with self._guard("find_relationship") as conn:
            row = conn.execute(
                "SELECT relationship_id FROM relationships "
                "WHERE subject_id = ? AND predicate_id = ? AND object_id = ?",
                (subject_id, predicate_id, object_id),
            ).fetchone()
        return row[0] if row else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_subject(self, descriptor: SubjectDescriptor, stake: int) -> WriteResult:
        subject_id = descriptor.key
        with self._guard("create_subject") as conn:
            if conn.execute(
                "SELECT 1 FROM subjects WHERE subject_id = ?", (subject_id,)
            ).fetchone():
                raise TransactionFailedError(
                    f"Subject already exists: {subject_id}"
                )
            tx_ref = self._submit(conn, "create_subject", subject_id, stake)
            conn.execute(
                "INSERT INTO subjects "
                "(subject_id, name, description, url, image, creator, created_tx) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    subject_id,
                    descriptor.name,
                    descriptor.description,
                    descriptor.url,
                    descriptor.image,
                    self._address,
                    tx_ref,
                ),
            )
        logger.debug("Subject %s created in %s", subject_id, tx_ref)
        return WriteResult(id=subject_id, tx_ref=tx_ref)

    def create_relationship(
        self, descriptor: RelationshipDescriptor, stake: int
    ) -> WriteResult:
        relationship_id = descriptor.key
        with self._guard("create_relationship") as conn:
            for endpoint in (descriptor.subject_id, descriptor.object_id):
                if not conn.execute(
                    "SELECT 1 FROM subjects WHERE subject_id = ?", (endpoint,)
                ).fetchone():
                    raise TransactionFailedError(f"Unknown subject: {endpoint}")
            if conn.execute(
                "SELECT 1 FROM relationships WHERE relationship_id = ?",
                (relationship_id,),
            ).fetchone():
                raise TransactionFailedError(
                    f"Relationship already exists: {relationship_id}"
                )
            tx_ref = self._submit(conn, "create_relationship", relationship_id, stake)
            conn.execute(
                "INSERT INTO relationships "
                "(relationship_id, subject_id, predicate_id, object_id, creator, created_tx) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    relationship_id,
                    descriptor.subject_id,
                    descriptor.predicate_id,
                    descriptor.object_id,
                    self._address,
                    tx_ref,
                ),
            )
        logger.debug("Relationship %s created in %s", relationship_id, tx_ref)
        return WriteResult(id=relationship_id, tx_ref=tx_ref)

    def add_stake(self, relationship_id: str, amount: int) -> WriteResult:
        with self._guard("add_stake") as conn:
            if not conn.execute(
                "SELECT 1 FROM relationships WHERE relationship_id = ?",
                (relationship_id,),
            ).fetchone():
                raise TransactionFailedError(
                    f"Unknown relationship: {relationship_id}"
                )
            tx_ref = self._submit(conn, "add_stake", relationship_id, amount)
        logger.debug("Stake of %d added to %s in %s", amount, relationship_id, tx_ref)
        return WriteResult(id=relationship_id, tx_ref=tx_ref)

    def _submit(
        self, conn: sqlite3.Connection, kind: str, resource_id: str, amount: int
    ) -> str:
        """Debit, record the stake and mine the transaction in a new block.

        Runs inside the caller's transaction, so a failure anywhere in the
        write rolls all of it back.
        """
        if amount <= 0:
            raise TransactionFailedError(f"{kind}: stake must be positive")
        row = conn.execute(
            "SELECT balance, nonce FROM accounts WHERE address = ?",
            (self._address,),
        ).fetchone()
        balance, nonce = int(row[0]), int(row[1])
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient balance. Required: {amount} wei, "
                f"Available: {balance} wei",
                required=amount,
                available=balance,
            )
        tx_ref = ledger_hash(
            {
                "sender": self._address,
                "nonce": nonce,
                "kind": kind,
                "resource_id": resource_id,
                "amount": str(amount),
            }
        )
        head = conn.execute("SELECT head FROM chain WHERE id = 1").fetchone()[0]
        block_number = head + 1
        conn.execute(
            "UPDATE accounts SET balance = ?, nonce = ? WHERE address = ?",
            (str(balance - amount), nonce + 1, self._address),
        )
        conn.execute(
            "INSERT INTO transactions "
            "(tx_ref, sender, nonce, kind, resource_id, amount, block_number) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (tx_ref, self._address, nonce, kind, resource_id, str(amount), block_number),
        )
        conn.execute(
            "INSERT INTO stakes (resource_id, depositor, amount, tx_ref) "
            "VALUES (?, ?, ?, ?)",
            (resource_id, self._address, str(amount), tx_ref),
        )
        conn.execute("UPDATE chain SET head = ? WHERE id = 1", (block_number,))
        return tx_ref

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def await_confirmation(self, tx_ref: str) -> Confirmation:
        """Wait until *tx_ref* is buried under the configured depth.

        The local chain produces blocks on demand, so waiting means
        advancing the head far enough.
        """
        with self._guard("await_confirmation") as conn:
            row = conn.execute(
                "SELECT block_number FROM transactions WHERE tx_ref = ?", (tx_ref,)
            ).fetchone()
            if row is None:
                raise TransactionFailedError(
                    f"Failed to confirm transaction {tx_ref}: not found", tx_ref=tx_ref
                )
            block_number = int(row[0])
            target = block_number + self.confirmations - 1
            head = conn.execute("SELECT head FROM chain WHERE id = 1").fetchone()[0]
            if head < target:
                conn.execute("UPDATE chain SET head = ? WHERE id = 1", (target,))
        logger.debug(
            "Transaction %s confirmed in block %d with %d confirmation(s)",
            tx_ref,
            block_number,
            self.confirmations,
        )
        return Confirmation(tx_ref=tx_ref, confirmed=True, block_ref=block_number)

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def stake_total(self, resource_id: str) -> int:
        """Sum of every deposit made on *resource_id*."""
        with self._guard("stake_total") as conn:
            rows = conn.execute(
                "SELECT amount FROM stakes WHERE resource_id = ?", (resource_id,)
            ).fetchall()
        return sum(int(r[0]) for r in rows)

    def list_subjects(self) -> list[dict[str, Any]]:
        with self._guard("list_subjects") as conn:
            rows = conn.execute(
                "SELECT s.subject_id, s.name, s.url, t.block_number "
                "FROM subjects s JOIN transactions t ON t.tx_ref = s.created_tx "
                "ORDER BY t.block_number"
            ).fetchall()
        return [
            {
                "subject_id": r[0],
                "name": r[1],
                "url": r[2],
                "block": r[3],
                "stake": self.stake_total(r[0]),
            }
            for r in rows
        ]

    def list_relationships(self) -> list[dict[str, Any]]:
        with self._guard("list_relationships") as conn:
            rows = conn.execute(
                "SELECT r.relationship_id, r.subject_id, r.predicate_id, r.object_id, "
                "t.block_number "
                "FROM relationships r JOIN transactions t ON t.tx_ref = r.created_tx "
                "ORDER BY t.block_number"
            ).fetchall()
        return [
            {
                "relationship_id": r[0],
                "subject_id": r[1],
                "predicate_id": r[2],
                "object_id": r[3],
                "block": r[4],
                "stake": self.stake_total(r[0]),
            }
            for r in rows
        ]

    def head_block(self) -> int:
        with self._guard("head_block") as conn:
            return int(conn.execute("SELECT head FROM chain WHERE id = 1").fetchone()[0])
