"""Domain Events related to gateway calls and resilience.

Emitted by the request executor when a call is admitted, retried,
succeeds, or fails definitively.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass(frozen=True)
class RequestAdmitted(DomainEvent):
    """Event triggered when a call obtains an admission slot."""
    operation: str
    waited_ms: float
    active_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed call."""
    operation: str
    attempt_number: int  # the retry about to run, 1-based
    delay_ms: float
    error_type: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RequestSucceeded(DomainEvent):
    """Event triggered when a call succeeds."""
    operation: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RequestExhausted(DomainEvent):
    """Event triggered when a call fails definitively (not retryable, or out of retries)."""
    operation: str
    attempts: int
    error_type: str
    retryable: bool
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
