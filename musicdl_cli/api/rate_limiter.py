"""
Provides an adaptive rate limiter to stay within the MusicBrainz rate policy
(one request per second per client) and back off on 503 responses.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Dynamically adjusts call rate based on API feedback (503/429 errors).
    """

    def __init__(
        self,
        initial_calls_per_second: float = 1.0,
        max_calls_per_second: float = 1.0,
        min_calls_per_second: float = 0.25,
    ):
        """
        Initializes the rate limiter.

        Args:
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The maximum rate to recover to.
            min_calls_per_second: The floor the rate is never halved below.
        """
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_rate = min_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time: float | None = None
        self._last_throttle_time = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_throttled(self) -> None:
        """
        Called when the service rejects a request for rate reasons. Halves the
        current request rate.
        """
        async with self._lock:
            self._rate = max(self._min_rate, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_throttle_time = time.monotonic()
            log.warning(f"Rate limit hit. New rate: {self._rate:.2f} calls/s")

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current rate limit before allowing a
        call to proceed.
        """
        async with self._lock:
            # Gradually recover the rate if no throttling has occurred recently
            if time.monotonic() - self._last_throttle_time > 60:
                self._rate = min(self._max_rate, self._rate * 1.1)
                self._min_interval = 1.0 / self._rate

            now = time.monotonic()
            if self._last_call_time is not None:
                time_since_last = now - self._last_call_time
                if time_since_last < self._min_interval:
                    await asyncio.sleep(self._min_interval - time_since_last)

            self._last_call_time = time.monotonic()
