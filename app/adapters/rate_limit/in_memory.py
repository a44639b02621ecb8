"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Stale entries are purged opportunistically from ``check()``; there is no
  background timer.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)

DEFAULT_CLEANUP_INTERVAL_MS = 60_000


def epoch_ms() -> int:
    """Return the current UNIX time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class _WindowState:
    count: int
    window_start: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Each key gets its own window that starts at the first request observed
    for it and lasts ``window_ms``. A request arriving at or after
    ``window_start + window_ms`` opens a fresh window.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            config: Window size and quota; defaults to 100 requests per minute.
            cleanup_interval_ms: Minimum time between two purges of stale keys.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If cleanup_interval_ms is invalid.
        """
        if cleanup_interval_ms < 1:
            raise ValueError("cleanup_interval_ms must be >= 1")

        self._config = config or RateLimitConfig()
        self._cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._last_cleanup: int | None = int(clock())

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def entry_count(self) -> int:
        """Number of keys currently tracked (expired or not)."""
        with self._lock:
            return len(self._state_by_key)

    def _is_expired(self, state: _WindowState, now: int) -> bool:
        return now - state.window_start >= self._config.window_ms

    def _cleanup_due(self, now: int) -> bool:
        if self._last_cleanup is None:
            return True
        return now - self._last_cleanup > self._cleanup_interval_ms

    def _purge(self, now: int) -> int:
        self._last_cleanup = now
        expired_before = now - self._config.window_ms
        stale = [
            key
            for key, state in self._state_by_key.items()
            if state.window_start < expired_before
        ]
        for key in stale:
            del self._state_by_key[key]
        return len(stale)

    def purge_expired(self, now: int | None = None) -> int:
        """Drop every entry whose window has definitely expired.

        Removed entries would be recreated fresh on their next ``check()``
        anyway, so purging never changes an allow/deny decision.

        Args:
            now: Reference time in epoch milliseconds; defaults to the clock.

        Returns:
            Number of removed entries.
        """
        with self._lock:
            return self._purge(int(self._clock()) if now is None else now)

    def force_cleanup(self) -> None:
        """Make the next ``check()`` purge stale entries regardless of timing."""
        with self._lock:
            self._last_cleanup = None

    def check(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it is allowed.

        Rejected requests do not increment the counter, so repeated checks on
        an exhausted key keep returning the same ``reset_time``.

        Args:
            key: Unique identifier for rate limiting (e.g., client IP).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        limit = self._config.max_requests
        window_ms = self._config.window_ms

        with self._lock:
            now = int(self._clock())
            if self._cleanup_due(now):
                self._purge(now)

            state = self._state_by_key.get(key)
            if state is None or self._is_expired(state, now):
                self._state_by_key[key] = _WindowState(count=1, window_start=now)
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - 1,
                    reset_time=now + window_ms,
                )

            reset_time = state.window_start + window_ms
            if state.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_time=reset_time,
                )

            state.count += 1
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - state.count),
                reset_time=reset_time,
            )
