"""Value Objects for request admission and retry behaviour.

All durations are milliseconds. Records are immutable; to change the
behaviour of an executor, build a new record and swap it in whole.
"""

import enum
import time
from dataclasses import dataclass, field

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10_000
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_CONCURRENT = 1000
DEFAULT_TIME_WINDOW_MS = 60_000


@dataclass(frozen=True)
class RetryConfig:
    """Retry and exponential backoff settings.

    Raises:
        ValueError: If any value is out of range. Out-of-range values are
            rejected rather than clamped.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay_ms: float = DEFAULT_INITIAL_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_delay_ms <= 0:
            raise ValueError(f"initial_delay_ms must be > 0, got {self.initial_delay_ms}")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= initial_delay_ms ({self.initial_delay_ms})"
            )
        if self.backoff_factor <= 1:
            raise ValueError(f"backoff_factor must be > 1, got {self.backoff_factor}")


@dataclass(frozen=True)
class AdmissionConfig:
    """Shared ceiling for in-flight requests and requests admitted per window."""
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    time_window_ms: float = DEFAULT_TIME_WINDOW_MS

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if self.time_window_ms <= 0:
            raise ValueError(f"time_window_ms must be > 0, got {self.time_window_ms}")


class ExecutionState(str, enum.Enum):
    """Lifecycle of one logical call through the executor."""
    PENDING = "pending"
    ADMITTED = "admitted"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class AttemptState:
    """Ephemeral state of a single execution; discarded once it resolves."""
    attempt_number: int = 0  # 0-based, counts completed attempts
    started_at: float = field(default_factory=time.monotonic)
    state: ExecutionState = ExecutionState.PENDING
