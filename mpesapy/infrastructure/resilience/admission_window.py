"""Admission control for outgoing gateway requests.

Combines a concurrency cap with a sliding-window rate cap. Both use the
same ceiling: at most ``max_concurrent`` requests in flight, and at most
``max_concurrent`` requests admitted within the trailing ``time_window_ms``.

Waiting callers poll on a fixed short interval. This keeps the window
simple at the cost of up to one poll interval of extra latency, and it is
not FIFO: whichever waiter polls first after capacity frees up gets in,
so a waiter can starve under sustained saturation.
"""

import asyncio
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Deque

from mpesapy.domain.models.resilience import AdmissionConfig

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.1


class AdmissionWindow:
    """Gates entry to the network call; owns the admission ledger."""

    def __init__(
        self,
        config: AdmissionConfig,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        """Initializes the admission window.

        Args:
            config: Shared ceiling and window length.
            clock: Monotonic clock returning seconds.
            poll_interval: Seconds between admission checks while waiting.
        """
        self.config = config
        self._clock = clock
        self.poll_interval = poll_interval
        self.active_count = 0
        self.recent_timestamps: Deque[float] = deque()
        logger.info(
            f"AdmissionWindow initialized: {config.max_concurrent} concurrent / "
            f"{config.max_concurrent} per {config.time_window_ms}ms"
        )

    def set_config(self, config: AdmissionConfig) -> None:
        """Replaces the ceiling and window length.

        The ledger is kept: in-flight requests and recent admissions count
        against the new limits from the next admission check on.
        """
        logger.info(f"Admission configuration updated: {config}")
        self.config = config

    @property
    def _window_seconds(self) -> float:
        return self.config.time_window_ms / 1000

    def _prune_timestamps(self, now: float) -> None:
        """Removes timestamps older than the time window."""
        while self.recent_timestamps and now - self.recent_timestamps[0] >= self._window_seconds:
            self.recent_timestamps.popleft()

    def _has_capacity(self) -> bool:
        limit = self.config.max_concurrent
        return self.active_count < limit and len(self.recent_timestamps) < limit

    def try_acquire(self) -> bool:
        """Takes a slot if one is free right now. Never suspends."""
        now = self._clock()
        self._prune_timestamps(now)
        if not self._has_capacity():
            return False
        self.active_count += 1
        self.recent_timestamps.append(now)
        return True

    async def acquire(self) -> float:
        """Waits until both caps allow one more request, then takes a slot.

        The check and the ledger update happen without an intervening
        suspension point, so they are atomic under the event loop.

        Returns:
            Seconds spent waiting.
        """
        started = self._clock()
        while not self.try_acquire():
            await asyncio.sleep(self.poll_interval)
        waited = self._clock() - started
        if waited > 0:
            logger.debug(f"Admission granted after {waited:.3f}s. Active={self.active_count}")
        return waited

    def release(self) -> None:
        """Frees a concurrency slot. The admission timestamp stays and ages out."""
        if self.active_count == 0:
            logger.warning("release() called with no active requests; ignoring.")
            return
        self.active_count -= 1

    def recent_count(self) -> int:
        """Number of admissions inside the trailing window."""
        self._prune_timestamps(self._clock())
        return len(self.recent_timestamps)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Holds one admission slot for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
