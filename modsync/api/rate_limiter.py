"""
Provides an adaptive rate limiter to stay inside the platforms' request quotas.
"""

import asyncio
import logging
import time
from typing import Optional

log = logging.getLogger(__name__)

# Never sleep longer than this waiting for a quota window to reset
MAX_RESET_WAIT = 60.0


class AdaptiveRateLimiter:
    """
    Paces calls and adjusts the rate based on API feedback.

    The rate is halved on every 429 and slowly recovers. When a response
    reports that the quota window is used up, calls wait for the window to
    reset instead of burning the remaining budget on failures.
    """

    def __init__(
        self, initial_calls_per_second: float = 8.0, max_calls_per_second: float = 12.0
    ):
        """
        Initializes the rate limiter.

        Args:
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The maximum rate to recover to.
        """
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._last_429_time = 0.0
        self._remaining: Optional[int] = None
        self._reset_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_429(self) -> None:
        """
        Called when a 429 error is received. Halves the current request rate.
        """
        async with self._lock:
            self._rate = max(1.0, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_429_time = time.monotonic()
            log.warning(
                f"[yellow]Rate limit hit. New rate: {self._rate:.1f} calls/s[/yellow]"
            )

    def update_quota(self, remaining: Optional[int], reset_after: Optional[float]) -> None:
        """Records the quota reported by the latest response."""
        if remaining is None:
            return
        self._remaining = remaining
        if reset_after is not None:
            self._reset_at = time.monotonic() + max(0.0, reset_after)
        if remaining == 0:
            log.debug(f"Request quota used up, resets in {reset_after}s")

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current rate limit before allowing a call to proceed.
        """
        async with self._lock:
            if time.monotonic() - self._last_429_time > 300:
                self._rate = min(self._max_rate, self._rate * 1.005)
                self._min_interval = 1.0 / self._rate

            if self._remaining == 0:
                wait = min(MAX_RESET_WAIT, self._reset_at - time.monotonic())
                if wait > 0:
                    log.info(
                        f"[yellow]Request quota exhausted, waiting {wait:.0f}s "
                        "for it to reset.[/yellow]"
                    )
                    await asyncio.sleep(wait)
                self._remaining = None

            now = time.monotonic()
            time_since_last = now - self._last_call_time

            if time_since_last < self._min_interval:
                await asyncio.sleep(self._min_interval - time_since_last)

            self._last_call_time = time.monotonic()
