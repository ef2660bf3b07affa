"""Transient-fault retry for store calls."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from tenacity import RetryCallState

    from nutrikb.config import RetryPolicy

log = getLogger(__name__)

type Sleep = Callable[[float], None]


def is_transient(exc: BaseException) -> bool:
    """Whether ``exc`` is worth retrying: lost connections, timeouts, lock waits."""

    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def _log_retry(description: str, total: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        error = state.outcome.exception() if state.outcome else None
        log.warning(
            "Transient store error during %s (attempt %d/%d), retrying in %.2fs: %s",
            description,
            state.attempt_number,
            total,
            delay,
            error,
        )

    return before_sleep


def build_retrying(
    policy: RetryPolicy, *, description: str, sleep: Sleep = time.sleep
) -> Retrying:
    """Retry transient faults up to ``policy.total`` times with capped, jittered backoff."""

    return Retrying(
        stop=stop_after_attempt(policy.total + 1),
        wait=wait_exponential_jitter(
            initial=policy.backoff_factor,
            max=policy.max_backoff_wait,
            jitter=policy.backoff_jitter,
        ),
        retry=retry_if_exception(is_transient),
        before_sleep=_log_retry(description, policy.total),
        sleep=sleep,
        reraise=True,
    )


def call_with_retry[T](
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    description: str,
    sleep: Sleep = time.sleep,
) -> T:
    """Run ``operation`` under :func:`build_retrying`.

    The last error is re-raised once retries are exhausted; non-transient errors
    are raised immediately.
    """

    return build_retrying(policy, description=description, sleep=sleep)(operation)
