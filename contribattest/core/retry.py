"""RetryExecutor: retry-with-backoff around any fallible ledger operation.

Uses tenacity for the attempt loop.  The executor differs from a plain
``@retry`` in three ways:

- classification comes from the error itself (``is_retryable``), with
  unclassified exceptions treated as retryable;
- the error that escapes is always the *last* error as raised, never a
  ``RetryError`` wrapper, so callers can match on its kind;
- every retried failure is reported to the injected observer as a
  warning carrying ``{attempt, max_attempts, delay_ms, error}``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from contribattest.core.errors import describe_error, is_retryable
from contribattest.models.config import RetryPolicy
from contribattest.routing.dispatcher import EventDispatcher

T = TypeVar("T")


class RetryExecutor:
    """Executes zero-argument operations under a ``RetryPolicy``.

    Parameters
    ----------
    observer:
        Dispatcher receiving one warning per retried failure.  Defaults to
        a logging-only dispatcher.
    sleep:
        Blocking sleep taking seconds.  Inject a recorder in tests.

    Example
    -------
    >>> executor = RetryExecutor()
    >>> balance = executor.execute(gateway.balance, RetryPolicy(max_attempts=3))
    """

    def __init__(
        self,
        observer: EventDispatcher | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._observer = observer or EventDispatcher.with_logging()
        self._sleep = sleep

    def execute(self, operation: Callable[[], T], policy: RetryPolicy) -> T:
        """Run *operation*, retrying retryable failures per *policy*.

        Raises
        ------
        Exception
            The last error raised by *operation*, unchanged, when it is not
            retryable or the final permitted attempt failed.
        """
        retrying = Retrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=self._wait_strategy(policy),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._report_retry(policy),
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(operation)

    @staticmethod
    def _wait_strategy(policy: RetryPolicy):
        base = policy.base_delay_ms / 1000
        if policy.exponential:
            return wait_exponential(
                multiplier=base, max=policy.max_delay_ms / 1000, exp_base=2
            )
        return wait_fixed(base)

    def _report_retry(self, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
        def _before_sleep(retry_state: RetryCallState) -> None:
            attempt = retry_state.attempt_number
            error = retry_state.outcome.exception() if retry_state.outcome else None
            message = describe_error(error) if error is not None else "unknown error"
            delay_ms = policy.delay_for(attempt)
            self._observer.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed: {message}. "
                f"Retrying in {delay_ms}ms...",
                source="retry",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_ms=delay_ms,
                error=message,
            )

        return _before_sleep
