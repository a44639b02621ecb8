"""Named registry of rate limiters.

Call sites that protect the same logical domain (e.g. "phone lookup") share a
limiter by name. The first caller fixes the configuration; later callers get
the existing instance even if they pass a different config, so configs should
come from a shared constant such as ``RateLimitPresets``.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

logger = logging.getLogger(__name__)

LimiterFactory = Callable[[RateLimitConfig], AbstractRateLimiter]


class RateLimiterRegistry:
    """Process-wide store mapping a logical name to one limiter instance."""

    def __init__(self, factory: LimiterFactory | None = None) -> None:
        """Create an empty registry.

        Args:
            factory: Builds a limiter from a config; defaults to the in-memory
                fixed-window limiter.
        """
        self._factory: LimiterFactory = factory or InMemoryFixedWindowRateLimiter
        self._lock = threading.Lock()
        self._limiters: dict[str, AbstractRateLimiter] = {}

    def get_or_create(
        self, name: str, config: RateLimitConfig | None = None
    ) -> AbstractRateLimiter:
        """Return the limiter registered as ``name``, creating it on first use.

        Args:
            name: Logical limiter name.
            config: Used only when the limiter does not exist yet.

        Returns:
            The shared limiter instance for ``name``.
        """
        limiter = self._limiters.get(name)
        if limiter is not None:
            return limiter

        with self._lock:
            limiter = self._limiters.get(name)
            if limiter is None:
                limiter = self._factory(config or RateLimitConfig())
                self._limiters[name] = limiter
                logger.info(
                    "rate_limit.limiter_created",
                    extra={
                        "limiter": name,
                        "window_ms": limiter.config.window_ms,
                        "max_requests": limiter.config.max_requests,
                    },
                )
            return limiter

    def get(self, name: str) -> AbstractRateLimiter | None:
        return self._limiters.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._limiters)

    def clear(self) -> None:
        """Drop every registered limiter (shutdown and test hook)."""
        with self._lock:
            self._limiters.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)
