"""Retry policy with exponential backoff and jitter."""

from __future__ import annotations

import random
from dataclasses import dataclass

from .errors import (
    HTTPError,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)

RETRYABLE_ERRORS: tuple[type[HTTPError], ...] = (
    RateLimitedError,
    ServerError,
    RequestTimeoutError,
    NetworkError,
)

MAX_JITTER_SECONDS = 0.5


@dataclass(frozen=True)
class RetryPolicy:
    """Pure retry decisions; holds no mutable state."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0

    def should_retry(self, error: HTTPError, attempt: int) -> bool:
        """Return whether ``error`` observed on ``attempt`` (0-based) is worth retrying.

        Unauthorized, bad request, not found, decoding and URL failures are
        never transient and always fail fast.
        """

        if attempt >= self.max_attempts:
            return False
        return isinstance(error, RETRYABLE_ERRORS)

    def delay(self, attempt: int) -> float:
        """Backoff before the retry following ``attempt``, clamped to ``max_delay``."""

        exponential = self.base_delay * (2**attempt)
        jitter = random.uniform(0, MAX_JITTER_SECONDS)
        # uniform() may return its upper bound; keep the jitter half-open.
        if jitter >= MAX_JITTER_SECONDS:
            jitter = 0.0
        return min(exponential + jitter, self.max_delay)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_retry_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )
