"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``rate_limit(...)`` only.
- Shared state by name: limiters live in a ``RateLimiterRegistry`` stored on
  ``app.state`` so every route using the same name shares one quota.
- Safe defaults: limits are on unless disabled via settings.

Usage:
    @router.post(
        "/phone-lookup",
        dependencies=[Depends(rate_limit("phone-lookup", RateLimitPresets.AUTH))],
    )
"""

from __future__ import annotations

import hashlib
import logging
import math
from functools import partial
from typing import Awaitable, Callable

from fastapi import FastAPI, Request

from app.adapters.rate_limit.base import RateLimitConfig, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter, epoch_ms
from app.adapters.rate_limit.registry import RateLimiterRegistry
from app.core.client_key import KeyExtractor, extract_rate_limit_key
from app.core.config import settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)


class RateLimitPresets:
    """Shared configurations for the kinds of endpoints the API exposes."""

    # Login, phone lookup, found-disc reports
    AUTH = RateLimitConfig(window_ms=60_000, max_requests=10)
    # Checkout and payouts
    PAYMENT = RateLimitConfig(window_ms=60_000, max_requests=5)
    STANDARD = RateLimitConfig(window_ms=60_000, max_requests=100)
    # Read-heavy listings
    RELAXED = RateLimitConfig(window_ms=60_000, max_requests=200)
    # AI photo identification, SMS
    EXPENSIVE = RateLimitConfig(window_ms=60_000, max_requests=2)


def build_rate_limit_headers(
    result: RateLimitResult, *, now: int | None = None
) -> dict[str, str]:
    """Render a limiter result as conventional response headers.

    ``X-RateLimit-Reset`` is the window end in epoch seconds (rounded up).
    ``Retry-After`` is only present on rejections and is never below 1, even
    when clock skew puts ``reset_time`` in the past.

    Args:
        result: Outcome of ``check()``.
        now: Reference time in epoch milliseconds; defaults to the wall clock.

    Returns:
        dict[str, str]: Header name to value.
    """

    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_time / 1000)),
    }

    if not result.allowed:
        now = epoch_ms() if now is None else now
        retry_after = math.ceil((result.reset_time - now) / 1000)
        headers["Retry-After"] = str(max(1, retry_after))

    return headers


def install_rate_limiter_registry(
    app: FastAPI, registry: RateLimiterRegistry | None = None
) -> RateLimiterRegistry:
    """Attach a registry to ``app.state`` and return it."""

    if registry is None:
        registry = RateLimiterRegistry(
            factory=partial(
                InMemoryFixedWindowRateLimiter,
                cleanup_interval_ms=settings.app.rate_limit_cleanup_interval_ms,
            )
        )
    app.state.rate_limiters = registry
    return registry


def get_rate_limiter_registry(request: Request) -> RateLimiterRegistry:
    """Return the registry the application was started with."""

    registry = getattr(request.app.state, "rate_limiters", None)
    if registry is None:
        raise RuntimeError(
            "No rate limiter registry installed; call install_rate_limiter_registry(app)"
        )
    return registry


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit(
    name: str,
    config: RateLimitConfig = RateLimitPresets.STANDARD,
    key_extractor: KeyExtractor | None = None,
) -> Callable[[Request], Awaitable[RateLimitResult | None]]:
    """Build a FastAPI dependency enforcing the ``name`` limiter.

    Allowed requests leave the rate limit headers on ``request.state`` for
    ``rate_limit_headers_middleware`` to copy onto whatever response the route
    returns. Rejected requests raise ``RateLimitAppError`` which the exception handlers turn
    into a 429 carrying the same headers plus ``Retry-After``.

    Args:
        name: Registry name; routes sharing a name share a quota.
        config: Limiter configuration, used when the limiter is first created.
        key_extractor: Optional custom key extractor.

    Returns:
        An async dependency returning the ``RateLimitResult`` (None when
        rate limiting is disabled).
    """

    async def enforce_rate_limit(request: Request) -> RateLimitResult | None:
        if not settings.app.rate_limit_enabled:
            return None

        limiter = get_rate_limiter_registry(request).get_or_create(name, config)
        key = extract_rate_limit_key(request, key_extractor)
        result = limiter.check(key)
        headers = build_rate_limit_headers(result)
        log_fields = {
            "limiter": name,
            "key_hash": _hash_limiter_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": limiter.config.window_ms,
        }

        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_fields)
            if settings.app.rate_limit_include_headers:
                request.state.rate_limit_headers = headers
            return result

        retry_after = int(headers["Retry-After"])
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": retry_after},
        )
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Please try again later.",
            details={
                "limiter": name,
                "limit": result.limit,
                "retry_after": retry_after,
                "reset_time": result.reset_time,
            },
            headers=headers if settings.app.rate_limit_include_headers else None,
        )

    return enforce_rate_limit
