"""Run configuration: env-driven via pydantic-settings.

Reads from a ``.env`` file and ``CONTRIBATTEST_*`` environment variables.
Run inputs are kept as raw strings here; ``contribattest.core.validation``
parses and range-checks them once at startup.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AttestConfig(BaseSettings):
    """Attestation run configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CONTRIBATTEST_PRIVATE_KEY=0x...
        export CONTRIBATTEST_NETWORK=mainnet
        export CONTRIBATTEST_FAILURE_MODE=fail

    Or via .env file::

        CONTRIBATTEST_LEDGER_PATH=/data/ledger.db
        CONTRIBATTEST_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CONTRIBATTEST_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Run inputs (raw, validated by validate_config)
    private_key: str = ""
    network: str = "testnet"
    failure_mode: str = "warn"
    min_deposit_amount: str = ""  # empty: network default
    retry_attempts: str = "3"
    retry_delay_ms: str = "2000"

    # Storage
    ledger_path: Path = Path(".contribattest/ledger.db")

    # Observability
    log_level: str = "INFO"
    events_path: Path | None = None  # JSONL observation log, off when unset

    def __repr__(self) -> str:
        key_state = "set" if self.private_key else "unset"
        return (
            f"AttestConfig(network={self.network!r}, "
            f"failure_mode={self.failure_mode!r}, private_key=<{key_state}>, "
            f"ledger_path={str(self.ledger_path)!r})"
        )
