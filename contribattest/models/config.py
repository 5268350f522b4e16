"""Run configuration models: retry policy, failure mode, network defaults."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FailureMode(str, Enum):
    """How a contributor failure affects the rest of the run.

    The values are the public input strings: ``fail`` aborts the run,
    ``warn`` records the failure and moves on.
    """

    ABORT = "fail"
    CONTINUE = "warn"


class NetworkName(str, Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class RetryPolicy(BaseModel):
    """Immutable retry settings supplied per call.

    ``max_attempts`` is the TOTAL number of tries, so ``max_attempts=3``
    means: try, retry, retry.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=2000, ge=0)
    exponential: bool = True
    max_delay_ms: int = Field(default=30000, ge=0)

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """Factory for a single-attempt policy."""
        return cls(max_attempts=1, base_delay_ms=0)

    def delay_for(self, attempt: int) -> int:
        """Delay in milliseconds after the failed *attempt* (1-indexed)."""
        if not self.exponential:
            return self.base_delay_ms
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)


class NetworkConfig(BaseModel):
    """Per-network ledger parameters."""

    model_config = ConfigDict(frozen=True)

    name: NetworkName
    min_deposit: int = Field(gt=0)  # smallest unit
    confirmations: int = Field(default=1, ge=1)


# Defaults per network.  Deposits are in the smallest unit (10^-18 TRUST).
NETWORK_DEFAULTS: dict[NetworkName, NetworkConfig] = {
    NetworkName.TESTNET: NetworkConfig(
        name=NetworkName.TESTNET,
        min_deposit=1_000_000_000_000_000,  # 0.001 TRUST
        confirmations=1,
    ),
    NetworkName.MAINNET: NetworkConfig(
        name=NetworkName.MAINNET,
        min_deposit=10_000_000_000_000_000,  # 0.01 TRUST
        confirmations=2,
    ),
}


def get_network_config(
    network: NetworkName | str, min_deposit: int | None = None
) -> NetworkConfig:
    """Return the configuration for *network*, optionally overriding the deposit."""
    config = NETWORK_DEFAULTS[NetworkName(network)]
    if min_deposit is not None:
        config = config.model_copy(update={"min_deposit": min_deposit})
    return config
