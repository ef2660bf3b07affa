"""Retry configuration for store calls."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: ``backoff_factor * 2**(n-1)`` capped at
    ``max_backoff_wait``, plus up to ``backoff_jitter`` seconds of random jitter."""

    total: int = 5
    backoff_factor: float = 0.25
    max_backoff_wait: float = 4.0
    backoff_jitter: float = 0.2


def get_retry_policy() -> RetryPolicy:
    return RetryPolicy(total=optional_int_env("NUTRIKB_STORE_RETRIES", RetryPolicy().total))
