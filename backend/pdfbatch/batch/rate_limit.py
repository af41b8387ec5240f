"""
Per-user submission rate limiting.

A RateLimiter is an explicit object owned by whoever builds the batch
service (one per process); there is no module-level cache.  Windows are
fixed per key: the first request opens a window of `window_seconds`,
requests inside it are counted, and every check sweeps windows that
have already expired.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from pdfbatch.batch.errors import RateLimitExceededError
from pdfbatch.core.config import settings


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int | None = None,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]

    def check(self, key: str) -> None:
        """Count one request for `key`; raise RateLimitExceededError past the limit."""
        now = self._clock()
        self._sweep(now)

        window = self._windows.get(key)
        if window is None:
            self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
            return

        if window.count >= self.max_requests:
            retry_after = datetime.fromtimestamp(window.reset_at, tz=timezone.utc)
            raise RateLimitExceededError(
                "Too many requests",
                details={"retryAfter": retry_after.isoformat(), "limit": self.max_requests},
            )
        window.count += 1
