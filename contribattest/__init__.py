"""contribattest: idempotent on-ledger attestation of pull-request contributors.

For a merged pull request, guarantees exactly one subject record per project
and per contributor, and exactly one relationship linking each contributor
to the project, however many times the run repeats:

  - retry with backoff, retryable vs. fatal error classification
  - generic "ensure exists, create or top up" resource routine
  - ordered, aggregated orchestration under abort or continue failure modes
  - observations fanned out to logging, in-memory and JSONL sinks
  - SQLite-backed local ledger for local runs
"""

__version__ = "0.1.0"
__description__ = "Idempotent on-ledger attestation of pull-request contributors"

from contribattest.core.orchestrator import AttestationOrchestrator
from contribattest.core.retry import RetryExecutor
from contribattest.cli.app import app as cli

__all__ = ["AttestationOrchestrator", "RetryExecutor", "cli", "__version__"]
