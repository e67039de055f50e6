"""
Request pacing for the geocoding provider.

The batch resolver calls ``wait()`` before every request and ``observe()`` with
the outcome afterwards, so pacing policy can be swapped without touching the
resolution loop.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from addrmap.models.outcome import GeocodeOutcome, OutcomeKind

logger = logging.getLogger(__name__)

__all__ = [
    "RateLimiter",
    "FixedIntervalRateLimiter",
    "BackoffRateLimiter",
    "NoopRateLimiter",
]


class RateLimiter(Protocol):
    def wait(self) -> None: ...

    def observe(self, outcome: GeocodeOutcome) -> None: ...


class FixedIntervalRateLimiter:
    """
    Enforces a minimum interval between consecutive requests.

    The first request is never delayed; the gap is measured from the moment the
    previous wait() returned.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval = max(0.0, min_interval_seconds)
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None

    @property
    def interval(self) -> float:
        return self._min_interval

    def wait(self) -> None:
        """Sleep as needed so requests stay at least ``interval`` apart."""
        if self._last_request is not None:
            wait_seconds = self.interval - (self._clock() - self._last_request)
            if wait_seconds > 0:
                self._sleep(wait_seconds)
        self._last_request = self._clock()

    def observe(self, outcome: GeocodeOutcome) -> None:
        """Fixed pacing ignores outcomes."""


class BackoffRateLimiter(FixedIntervalRateLimiter):
    """
    Fixed gate whose interval grows on RATE_LIMITED outcomes.

    Each OVER_QUERY_LIMIT multiplies the current interval (bounded by
    ``max_interval_seconds``); any other outcome restores the base interval.
    Rows are still not retried; only the spacing of later requests changes.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        multiplier: float = 2.0,
        max_interval_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(min_interval_seconds, clock=clock, sleep=sleep)
        self._base_interval = self._min_interval
        self._multiplier = max(1.0, multiplier)
        self._max_interval = max(self._base_interval, max_interval_seconds)
        self._current = self._base_interval

    @property
    def interval(self) -> float:
        return self._current

    def observe(self, outcome: GeocodeOutcome) -> None:
        if outcome.kind is OutcomeKind.RATE_LIMITED:
            # 0 秒間隔からでも backoff が効くよう最低 1 秒を起点にする
            self._current = min(self._max_interval, max(self._current, 1.0) * self._multiplier)
            logger.warning("rate limited by provider; pacing interval now %.2fs", self._current)
        elif self._current != self._base_interval:
            self._current = self._base_interval
            logger.debug("pacing interval reset to %.2fs", self._current)


class NoopRateLimiter:
    """Never waits. Used in tests and for providers without quotas."""

    def wait(self) -> None:
        return None

    def observe(self, outcome: GeocodeOutcome) -> None:
        return None
