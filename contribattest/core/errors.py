"""Error taxonomy for ledger attestation runs.

Every error carries a ``retryable`` flag that is fixed when the error is
constructed.  The retry layer reads the flag; it never re-derives it.

- ``InvalidInputError``       fatal, caller misconfiguration
- ``InsufficientFundsError``  fatal, a funding shortfall survives a retry
- ``TransientNetworkError``   retryable
- ``RemoteAPIError``          retryable unless the status is 403 or 404
- ``TransactionFailedError``  fatal, resubmitting could double-spend stake
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag naming the variant of an ``AttestationError``."""

    INVALID_INPUT = "invalid_input"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSIENT_NETWORK = "transient_network"
    REMOTE_API = "remote_api"
    TRANSACTION_FAILED = "transaction_failed"


# Client errors a retry can never fix.
PERMANENT_STATUS_CODES: frozenset[int] = frozenset({403, 404})


class AttestationError(RuntimeError):
    """Base class for all classified attestation errors."""

    kind: ErrorKind

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self._retryable = retryable

    @property
    def retryable(self) -> bool:
        return self._retryable

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"retryable={self._retryable})"
        )


class InvalidInputError(AttestationError):
    """Raised when inputs or configuration are invalid."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class InsufficientFundsError(AttestationError):
    """Raised when the funding identity cannot cover a deposit."""

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(
        self,
        message: str,
        *,
        required: int | None = None,
        available: int | None = None,
    ) -> None:
        super().__init__(message, retryable=False)
        self.required = required
        self.available = available


class TransientNetworkError(AttestationError):
    """Raised for transport failures that may succeed on a later attempt."""

    kind = ErrorKind.TRANSIENT_NETWORK

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class RemoteAPIError(AttestationError):
    """Raised when a remote data provider call fails."""

    kind = ErrorKind.REMOTE_API

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(
            message, retryable=status_code not in PERMANENT_STATUS_CODES
        )
        self.status_code = status_code


class TransactionFailedError(AttestationError):
    """Raised when a ledger write reverts or never confirms."""

    kind = ErrorKind.TRANSACTION_FAILED

    def __init__(self, message: str, tx_ref: str | None = None) -> None:
        super().__init__(message, retryable=False)
        self.tx_ref = tx_ref


def is_retryable(error: BaseException) -> bool:
    """Return the retry classification of *error*.

    Unclassified exceptions count as retryable: a network or runtime fault
    that nobody wrapped yet must not abort a multi-step ledger operation.
    """
    if isinstance(error, AttestationError):
        return error.retryable
    return True


def describe_error(error: BaseException) -> str:
    """Return the message of *error* as a plain string."""
    if isinstance(error, AttestationError):
        return error.message
    return str(error) or type(error).__name__
