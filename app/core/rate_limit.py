"""In-memory sliding-window rate limiter keyed by tenant + client IP.

Single-process only: each worker keeps its own windows. Keys whose window
has fully expired are swept at most once per window length.
"""

import logging
import time
from collections import defaultdict, deque
from collections.abc import Callable, Hashable

from app.core.config import Settings

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[Hashable, deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(settings.rate_limit_requests, settings.rate_limit_window_seconds)

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: Hashable) -> int | None:
        """Record a request for ``key``.

        Returns None when allowed, otherwise the number of seconds until the
        oldest request in the window expires (the request is not recorded).
        """
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        window = self._hits[key]
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

        if len(window) >= self.max_requests:
            retry_after = int(window[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ss window",
                key, len(window), self.window_seconds,
            )
            return retry_after

        window.append(now)
        return None

    def _sweep(self, now: float) -> None:
        cutoff = now - self.window_seconds
        stale = [k for k, w in self._hits.items() if not w or w[-1] <= cutoff]
        for k in stale:
            del self._hits[k]
        self._last_sweep = now
        if stale:
            logger.debug("Rate limiter dropped %d idle keys", len(stale))

    def clear(self) -> None:
        self._hits.clear()
