"""Service for executing gateway calls with admission control and retries.

Every operation (token generation, STK push, payout, URL registration)
hands its network call to ``RequestExecutor.execute`` as a zero-argument
coroutine function. The executor waits for an admission slot, runs the
call, and retries transient network failures with exponential backoff and
jitter. It does not classify failures: on a non-retryable failure, or
once retries are exhausted, the raw failure is re-raised unchanged and
the calling operation classifies it.
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from mpesapy.domain.events.api_events import (
    DomainEvent,
    RequestAdmitted,
    RequestExhausted,
    RequestSucceeded,
    RetryScheduled,
)
from mpesapy.domain.models.resilience import (
    AdmissionConfig,
    AttemptState,
    ExecutionState,
    RetryConfig,
)
from mpesapy.infrastructure.resilience.admission_window import AdmissionWindow
from mpesapy.infrastructure.resilience.backoff import RandomSource, compute_backoff_delay, should_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

EventHandler = Callable[[DomainEvent], None]
SleepFunc = Callable[[float], Awaitable[Any]]


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class RequestExecutor:
    """Runs gateway calls through the admission window and the retry loop."""

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        admission_window: Optional[AdmissionWindow] = None,
        sleep: SleepFunc = asyncio.sleep,
        rng: RandomSource = random,
        event_handler: Optional[EventHandler] = None,
    ):
        """Initializes the RequestExecutor.

        Args:
            retry_config: Retry/backoff settings. Defaults to ``RetryConfig()``.
            admission_window: Window owning the admission ledger. Each
                executor gets its own unless one is passed in.
            sleep: Coroutine used to wait out backoff delays (seconds).
            rng: Random source for jitter.
            event_handler: Receives domain events; defaults to DEBUG logging.
        """
        self._retry_config = retry_config or RetryConfig()
        self.admission_window = admission_window or AdmissionWindow(AdmissionConfig())
        self._sleep = sleep
        self._rng = rng
        self._event_handler = event_handler or _log_event

        logger.info(
            f"RequestExecutor initialized: max_retries={self._retry_config.max_retries}, "
            f"initial_delay={self._retry_config.initial_delay_ms}ms, "
            f"max_delay={self._retry_config.max_delay_ms}ms, factor={self._retry_config.backoff_factor}"
        )

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry_config

    def set_retry_config(self, config: RetryConfig) -> None:
        """Replaces the retry configuration wholesale.

        Calls already inside their retry loop keep the snapshot they took.
        """
        logger.info(f"Retry configuration updated: {config}")
        self._retry_config = config

    def _dispatch(self, event: DomainEvent) -> None:
        try:
            self._event_handler(event)
        except Exception as e:
            logger.error(f"Event handler failed for {type(event).__name__}: {e}", exc_info=True)

    async def execute(self, operation: Callable[[], Awaitable[T]], operation_name: Optional[str] = None) -> T:
        """Executes an async operation with admission control and retries.

        Args:
            operation: Zero-argument coroutine function performing one attempt.
            operation_name: Label for logs and events (defaults to the function name).

        Returns:
            The operation's result.

        Raises:
            Exception: The operation's last failure, unchanged, when it is not
                retryable or retries are exhausted.
        """
        name = operation_name or getattr(operation, "__name__", "operation")
        attempt = AttemptState()

        waited = await self.admission_window.acquire()
        attempt.state = ExecutionState.ADMITTED
        self._dispatch(RequestAdmitted(
            operation=name,
            waited_ms=waited * 1000,
            active_count=self.admission_window.active_count,
        ))

        retry_config: Optional[RetryConfig] = None
        try:
            while True:
                attempt.state = ExecutionState.ATTEMPTING
                try:
                    result = await operation()
                except Exception as e:
                    # One snapshot per logical call, taken at the first failure.
                    if retry_config is None:
                        retry_config = self._retry_config
                    retryable = should_retry(e)
                    if retryable and attempt.attempt_number < retry_config.max_retries:
                        attempt.state = ExecutionState.RETRYING
                        delay_ms = compute_backoff_delay(attempt.attempt_number, retry_config, self._rng)
                        logger.warning(
                            f"Retryable error calling {name} on attempt {attempt.attempt_number + 1}/"
                            f"{retry_config.max_retries + 1}: {type(e).__name__}. Waiting {delay_ms:.0f}ms..."
                        )
                        self._dispatch(RetryScheduled(
                            operation=name,
                            attempt_number=attempt.attempt_number + 1,
                            delay_ms=delay_ms,
                            error_type=type(e).__name__,
                        ))
                        await self._sleep(delay_ms / 1000)
                        attempt.attempt_number += 1
                        continue

                    attempt.state = ExecutionState.EXHAUSTED
                    if retryable:
                        logger.error(f"Max retries ({retry_config.max_retries}) reached for {name}. Last error: {e}")
                    else:
                        logger.debug(f"Non-retryable error calling {name}: {type(e).__name__}: {e}")
                    self._dispatch(RequestExhausted(
                        operation=name,
                        attempts=attempt.attempt_number + 1,
                        error_type=type(e).__name__,
                        retryable=retryable,
                        error_message=str(e),
                    ))
                    raise

                attempt.state = ExecutionState.SUCCEEDED
                latency_ms = (time.monotonic() - attempt.started_at) * 1000
                self._dispatch(RequestSucceeded(
                    operation=name,
                    attempts=attempt.attempt_number + 1,
                    latency_ms=latency_ms,
                ))
                return result
        finally:
            self.admission_window.release()
