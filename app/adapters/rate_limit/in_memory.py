"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the per-key read-modify-write.
- Keys are never evicted; inactive clients keep an (empty or stale) entry.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests in a trailing window per key.

    Every check prunes timestamps that are a full window old or older,
    records the current timestamp (rejected requests included) and blocks
    once the number of recorded requests exceeds ``limit``.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests allowed per window.
            window_seconds: Length of the trailing window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._hits_by_key: dict[str, list[float]] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def hits(self, key: str) -> list[float]:
        """Return a copy of the timestamps currently stored for ``key``."""
        with self._lock:
            return list(self._hits_by_key.get(key, ()))

    def consume(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it is allowed.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            hits = [t for t in self._hits_by_key.get(key, ()) if now - t < self._window_seconds]
            hits.append(now)
            self._hits_by_key[key] = hits
            count = len(hits)
            oldest = hits[0]

        reset_at = oldest + self._window_seconds
        remaining = max(0, self._limit - count)

        if count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=remaining,
                reset_at=int(math.ceil(reset_at)),
                retry_after_seconds=None,
            )

        # A new request fits once all but limit - 1 recorded hits have expired.
        blocking = hits[count - self._limit]
        retry_after = max(1, int(math.ceil(blocking + self._window_seconds - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=retry_after,
        )
