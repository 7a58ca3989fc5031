"""Minimum-interval rate limiter for sequential API calls."""

from __future__ import annotations

import logging
import time
from typing import Callable

LOGGER = logging.getLogger(__name__)


class RateLimiter:
    """Blocks so that consecutive ``wait()`` calls are at least ``min_interval_seconds`` apart.

    Clock and sleep are injectable so tests can simulate time.
    The first call never blocks.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self.min_interval = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None

    def wait(self) -> float:
        """Wait if needed and return the number of seconds slept."""
        slept = 0.0
        if self._last_call is not None:
            elapsed = self._clock() - self._last_call
            if elapsed < self.min_interval:
                slept = self.min_interval - elapsed
                LOGGER.debug("Rate limiting: sleeping %.3fs", slept)
                self._sleep(slept)
        self._last_call = self._clock()
        return slept
