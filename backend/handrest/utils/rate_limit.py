"""Per-client request budgets for the login and booking endpoints."""

from __future__ import annotations

import bisect
import math
import threading
import time
from typing import Callable, NamedTuple


class RateDecision(NamedTuple):
    allowed: bool
    retry_after: int = 0


class SlidingWindowLimiter:
    """Keeps a sorted log of request timestamps per key.

    A request is admitted while fewer than `limit` timestamps fall inside
    the trailing `window_seconds`; denied requests are not logged.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._log: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def check(self, key: str, limit: int, window_seconds: int) -> RateDecision:
        """Record a request for `key` if it fits the budget."""
        now = self._clock()
        with self._lock:
            stamps = self._log.setdefault(key, [])
            del stamps[: bisect.bisect_left(stamps, now - window_seconds)]
            if len(stamps) < limit:
                stamps.append(now)
                return RateDecision(True)
            if limit <= 0:
                return RateDecision(False, max(1, window_seconds))
            # a slot frees when the stamp `limit` places from the end leaves the window
            freed_at = stamps[-limit] + window_seconds
            return RateDecision(False, max(1, math.ceil(freed_at - now)))

    def reset(self) -> None:
        with self._lock:
            self._log.clear()
