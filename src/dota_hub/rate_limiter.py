"""Adaptive request pacing for the OpenDota and Liquipedia APIs.

The limiter spaces requests with a jittered delay that grows on failures
and shrinks back on successes. Time spent between requests counts toward
the delay. A ``Retry-After`` from the server is honoured by pushing the
next allowed request time forward.

Fully async -- uses asyncio.sleep and asyncio.Lock so concurrent lookups
share one pace without blocking the event loop.
"""

import asyncio
import logging
import random
import time

from dota_hub.config import AggregatorConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Manages delays between API requests with jitter and adaptive backoff.

    The delay is drawn from [current_delay, min(current_delay * 1.5, ceiling)],
    where the ceiling is ``max_delay`` during normal operation and
    ``max_backoff`` once backoff() has pushed the delay above ``max_delay``.
    """

    def __init__(self, config: AggregatorConfig | None = None):
        if config is None:
            config = AggregatorConfig()

        self._min_delay = config.min_delay
        self._max_delay = config.max_delay
        self._backoff_factor = config.backoff_factor
        self._recovery_factor = config.recovery_factor
        self._max_backoff = config.max_backoff
        self._current_delay = config.min_delay
        self._last_request_time: float = 0.0
        self._not_before: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def current_delay(self) -> float:
        """Current base delay value in seconds."""
        return self._current_delay

    async def wait(self) -> float:
        """Sleep until the next request may go out.

        Returns:
            Seconds actually slept.
        """
        async with self._lock:
            now = time.monotonic()
            ceiling = max(self._max_delay, self._current_delay)
            jittered = random.uniform(
                self._current_delay, min(self._current_delay * 1.5, ceiling)
            )
            remaining = max(
                0.0,
                jittered - (now - self._last_request_time),
                self._not_before - now,
            )
            if remaining > 0:
                await asyncio.sleep(remaining)

            self._last_request_time = time.monotonic()
            return remaining

    def backoff(self) -> None:
        """Increase delay after a failed request."""
        self._current_delay = min(
            self._current_delay * self._backoff_factor,
            self._max_backoff,
        )
        logger.warning("Rate limiter backoff: delay now %.1fs", self._current_delay)

    def penalize(self, seconds: float) -> None:
        """Hold every request for *seconds* (server Retry-After)."""
        seconds = min(max(seconds, 0.0), self._max_backoff)
        self._not_before = max(self._not_before, time.monotonic() + seconds)
        logger.warning("Rate limited by server, pausing %.1fs", seconds)

    def recover(self) -> None:
        """Gradually decrease delay after a successful request."""
        self._current_delay = max(
            self._current_delay * self._recovery_factor,
            self._min_delay,
        )

    def reset(self) -> None:
        """Reset delay to minimum and clear any server-imposed pause."""
        self._current_delay = self._min_delay
        self._not_before = 0.0
