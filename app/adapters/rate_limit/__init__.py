"""Rate limiting adapters.

This package keeps the limiter behind a small abstraction so the service can
start with a per-process in-memory store and later move to Redis or another
shared store without touching the HTTP layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.registry import RateLimiterRegistry

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimiterRegistry",
]
