"""Shared test fixtures for contribattest."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from contribattest.core.ensurer import ResourceEnsurer
from contribattest.core.orchestrator import AttestationOrchestrator
from contribattest.core.retry import RetryExecutor
from contribattest.gateway.local_ledger import LocalLedgerGateway
from contribattest.models.config import NetworkConfig, NetworkName, RetryPolicy
from contribattest.models.descriptors import ContributorDescriptor, SubjectDescriptor
from contribattest.routing.dispatcher import EventDispatcher
from contribattest.routing.sinks.recording import RecordingSink
from tests.fakes import MIN_DEPOSIT, TEST_PRIVATE_KEY, FakeLedgerGateway

# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> FakeLedgerGateway:
    """Provide a funded in-memory gateway."""
    return FakeLedgerGateway()


@pytest.fixture
def recorder() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def observer(recorder: RecordingSink) -> EventDispatcher:
    """Provide a dispatcher that records every observation."""
    return EventDispatcher([recorder])


@pytest.fixture
def sleeps() -> list[float]:
    """Seconds passed to the retry executor's sleep, in order."""
    return []


@pytest.fixture
def retry_executor(observer: EventDispatcher, sleeps: list[float]) -> RetryExecutor:
    """Provide a retry executor that records delays instead of sleeping."""
    return RetryExecutor(observer, sleep=sleeps.append)


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Three attempts with 10ms/20ms/40ms backoff capped at 50ms."""
    return RetryPolicy(max_attempts=3, base_delay_ms=10, exponential=True, max_delay_ms=50)


@pytest.fixture
def ensurer(
    gateway: FakeLedgerGateway,
    retry_executor: RetryExecutor,
    observer: EventDispatcher,
) -> ResourceEnsurer:
    return ResourceEnsurer(gateway, retry_executor, observer)


@pytest.fixture
def orchestrator(
    gateway: FakeLedgerGateway,
    retry_executor: RetryExecutor,
    observer: EventDispatcher,
) -> AttestationOrchestrator:
    return AttestationOrchestrator(gateway, observer, retry=retry_executor)


@pytest.fixture
def local_ledger(tmp_path: Path) -> Iterator[LocalLedgerGateway]:
    """Provide a funded SQLite ledger in a temp directory."""
    network = NetworkConfig(name=NetworkName.TESTNET, min_deposit=MIN_DEPOSIT)
    ledger = LocalLedgerGateway(tmp_path / "ledger.db", TEST_PRIVATE_KEY, network)
    ledger.fund(10**20)
    yield ledger
    ledger.close()


# ---------------------------------------------------------------------------
# Descriptor factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_project() -> Callable[..., SubjectDescriptor]:
    """Factory fixture: build a project SubjectDescriptor."""

    def _factory(name: str = "org/repo", **overrides: Any) -> SubjectDescriptor:
        defaults: dict[str, Any] = {
            "name": name,
            "description": f"Repository: {name.split('/')[-1]}",
            "url": f"https://github.com/{name}",
        }
        defaults.update(overrides)
        return SubjectDescriptor(**defaults)

    return _factory


@pytest.fixture
def make_contributor() -> Callable[..., ContributorDescriptor]:
    """Factory fixture: build a ContributorDescriptor from a handle."""

    def _factory(handle: str = "ada", **overrides: Any) -> ContributorDescriptor:
        defaults: dict[str, Any] = {
            "display_name": handle.capitalize(),
            "contact_key": f"{handle}@example.com",
            "profile_url": f"https://github.com/{handle}",
            "handle": handle,
            "commit_count": 1,
        }
        defaults.update(overrides)
        return ContributorDescriptor(**defaults)

    return _factory


@pytest.fixture
def project(make_project: Callable[..., SubjectDescriptor]) -> SubjectDescriptor:
    return make_project()
