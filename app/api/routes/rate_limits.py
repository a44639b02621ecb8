from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import RateLimitPresets, get_rate_limiter_registry, rate_limit
from app.schemas.rate_limits import RateLimiterInfo, RateLimiterListResponse

router = APIRouter(tags=["Rate limits"])


@router.get(
    "/rate-limits",
    response_model=RateLimiterListResponse,
    dependencies=[Depends(rate_limit("rate-limits", RateLimitPresets.STANDARD))],
)
def list_rate_limiters(request: Request) -> RateLimiterListResponse:
    """List the limiters created so far in this process.

    Limiters are created lazily on the first request to a protected route, so
    this endpoint always reports at least its own limiter.
    """

    registry = get_rate_limiter_registry(request)
    limiters = []
    for name in registry.names():
        limiter = registry.get(name)
        if limiter is None:
            continue
        limiters.append(
            RateLimiterInfo(
                name=name,
                window_ms=limiter.config.window_ms,
                max_requests=limiter.config.max_requests,
                tracked_keys=getattr(limiter, "entry_count", None),
            )
        )
    return RateLimiterListResponse(limiters=limiters)
