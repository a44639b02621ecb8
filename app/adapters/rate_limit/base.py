"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
storage backend can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

DEFAULT_WINDOW_MS = 60_000
DEFAULT_MAX_REQUESTS = 100


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limiter configuration.

    Attributes:
        window_ms: Length of the window in milliseconds.
        max_requests: Maximum allowed requests per key per window.

    Raises:
        ValueError: If either value is not a positive integer.
    """

    window_ms: int = DEFAULT_WINDOW_MS
    max_requests: int = DEFAULT_MAX_REQUESTS

    def __post_init__(self) -> None:
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_time: Epoch milliseconds when the current window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @property
    @abstractmethod
    def config(self) -> RateLimitConfig:
        """Configuration the limiter was built with."""
        raise NotImplementedError

    @abstractmethod
    def check(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it is allowed.

        Args:
            key: Unique identifier (e.g., client IP, user id).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
