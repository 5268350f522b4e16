"""Ledger gateways consumed by the attestation core."""

from contribattest.gateway.base import (
    BaseLedgerGateway,
    Confirmation,
    LedgerGateway,
    WriteResult,
)
from contribattest.gateway.local_ledger import LocalLedgerGateway, derive_address

__all__ = [
    "BaseLedgerGateway",
    "Confirmation",
    "LedgerGateway",
    "LocalLedgerGateway",
    "WriteResult",
    "derive_address",
]
