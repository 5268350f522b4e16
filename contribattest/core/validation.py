"""Run input validation: the single enforcement point for raw settings.

Settings arrive as raw strings (environment, ``.env``, CLI options).  They
are parsed and checked once, before any ledger call, and every violation
raises ``InvalidInputError`` with a message naming the offending input.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from contribattest.config import AttestConfig
from contribattest.core.errors import InvalidInputError
from contribattest.models.config import (
    FailureMode,
    NetworkConfig,
    NetworkName,
    RetryPolicy,
    get_network_config,
)

logger = logging.getLogger(__name__)

PRIVATE_KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
_INJECTION_CHARS = ("\n", "\r", ";")

RETRY_ATTEMPTS_RANGE = (1, 10)
RETRY_DELAY_MS_RANGE = (100, 30_000)


class ValidatedSettings(BaseModel):
    """Parsed, range-checked run settings."""

    model_config = ConfigDict(frozen=True)

    private_key: str
    network: NetworkName
    failure_mode: FailureMode
    min_deposit_amount: int | None = None
    retry_attempts: int = 3
    retry_delay_ms: int = 2000

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_attempts,
            base_delay_ms=self.retry_delay_ms,
            exponential=True,
        )

    def network_config(self) -> NetworkConfig:
        return get_network_config(self.network, self.min_deposit_amount)

    def __repr__(self) -> str:
        # Never render the funding credential.
        return (
            f"ValidatedSettings(network={self.network.value}, "
            f"failure_mode={self.failure_mode.value}, "
            f"min_deposit_amount={self.min_deposit_amount}, "
            f"retry_attempts={self.retry_attempts}, "
            f"retry_delay_ms={self.retry_delay_ms})"
        )

    __str__ = __repr__


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def validate_private_key(key: str) -> str:
    trimmed = key.strip()
    if any(ch in trimmed for ch in _INJECTION_CHARS):
        raise InvalidInputError("Private key contains invalid characters")
    if not PRIVATE_KEY_PATTERN.match(trimmed):
        raise InvalidInputError(
            "Private key must be in format: 0x followed by 64 hexadecimal characters"
        )
    return trimmed


def validate_network(network: str) -> NetworkName:
    try:
        return NetworkName(network.strip().lower())
    except ValueError:
        raise InvalidInputError(
            f"Invalid network: {network}. Must be 'testnet' or 'mainnet'"
        ) from None


def validate_failure_mode(mode: str) -> FailureMode:
    try:
        return FailureMode(mode.strip().lower())
    except ValueError:
        raise InvalidInputError(
            f"Invalid failure-mode: {mode}. Must be 'fail' or 'warn'"
        ) from None


def validate_positive_int(value: str | int, field_name: str) -> int:
    """Parse an arbitrarily large positive integer (deposit amounts)."""
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise InvalidInputError(
            f"{field_name} must be a valid positive integer"
        ) from None
    if parsed <= 0:
        raise InvalidInputError(f"{field_name} must be greater than 0")
    return parsed


def validate_number(
    value: str | int,
    field_name: str,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise InvalidInputError(f"{field_name} must be a valid number") from None
    if minimum is not None and parsed < minimum:
        raise InvalidInputError(f"{field_name} must be at least {minimum}")
    if maximum is not None and parsed > maximum:
        raise InvalidInputError(f"{field_name} must be at most {maximum}")
    return parsed


def validate_url(url: str) -> str:
    """Return *url* unchanged if it is absolute (scheme and host present)."""
    try:
        parts = urlsplit(url)
    except ValueError:
        raise InvalidInputError(f"Invalid URL format: {url}") from None
    if not parts.scheme or not parts.netloc:
        raise InvalidInputError(f"Invalid URL format: {url}")
    return url


# ---------------------------------------------------------------------------
# Whole-config validation
# ---------------------------------------------------------------------------


def validate_config(config: AttestConfig) -> ValidatedSettings:
    """Parse and check every run input in *config*.

    Raises
    ------
    InvalidInputError
        On the first invalid input, in declaration order.
    """
    if not config.private_key:
        raise InvalidInputError(
            "A private key is required. Set CONTRIBATTEST_PRIVATE_KEY."
        )
    private_key = validate_private_key(config.private_key)
    network = validate_network(config.network or NetworkName.TESTNET.value)
    failure_mode = validate_failure_mode(
        config.failure_mode or FailureMode.CONTINUE.value
    )
    min_deposit = (
        validate_positive_int(config.min_deposit_amount, "min-deposit-amount")
        if str(config.min_deposit_amount).strip()
        else None
    )
    retry_attempts = validate_number(
        config.retry_attempts or "3", "retry-attempts", *RETRY_ATTEMPTS_RANGE
    )
    retry_delay_ms = validate_number(
        config.retry_delay_ms or "2000", "retry-delay", *RETRY_DELAY_MS_RANGE
    )

    settings = ValidatedSettings(
        private_key=private_key,
        network=network,
        failure_mode=failure_mode,
        min_deposit_amount=min_deposit,
        retry_attempts=retry_attempts,
        retry_delay_ms=retry_delay_ms,
    )
    logger.debug("Validated settings: %s", settings)
    return settings
