"""Backoff policy and retry eligibility.

``compute_backoff_delay`` is a pure function of the attempt count and the
retry configuration (plus a random source for jitter). ``should_retry``
decides whether a raw failure is transient and network-shaped.
"""

import logging
import random
from typing import Protocol

import httpx

from mpesapy.domain.errors import MpesaError
from mpesapy.domain.models.resilience import RetryConfig

logger = logging.getLogger(__name__)

# Jitter band: the delay lands uniformly in [75%, 125%] of the capped value.
JITTER_LOW = 0.75
JITTER_SPAN = 0.5

RETRYABLE_STATUS_CODES = frozenset({429, 503, 504})


class RandomSource(Protocol):
    def random(self) -> float: ...


def base_delay(attempt: int, config: RetryConfig) -> float:
    """Capped exponential delay in milliseconds, before jitter."""
    return min(config.initial_delay_ms * config.backoff_factor ** attempt, config.max_delay_ms)


def compute_backoff_delay(attempt: int, config: RetryConfig, rng: RandomSource = random) -> float:
    """Calculates the delay before the next retry.

    Args:
        attempt: Number of completed attempts, 0-based (the first retry uses 0).
        config: Retry configuration snapshot.
        rng: Random source for jitter; anything with a ``random()`` method.

    Returns:
        Delay in milliseconds.
    """
    return base_delay(attempt, config) * (JITTER_LOW + rng.random() * JITTER_SPAN)


def is_no_response(error: BaseException) -> bool:
    """True if the request went out (or was attempted) but no response came back."""
    # UnsupportedProtocol is a local URL problem, not a network one.
    return isinstance(error, httpx.TransportError) and not isinstance(error, httpx.UnsupportedProtocol)


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600


def should_retry(error: BaseException) -> bool:
    """Determines if a failure should trigger another attempt.

    Retries on network errors (no response) and on 429, 503, 504 or any
    other 5xx status. Never retries errors already classified into the
    taxonomy, other 4xx statuses, or anything that is not an HTTP failure.
    """
    if isinstance(error, MpesaError):
        return False
    if isinstance(error, httpx.HTTPStatusError):
        return is_retryable_status(error.response.status_code)
    return is_no_response(error)
