"""Pydantic schemas for rate limiter introspection."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class RateLimiterInfo(BaseModel):
    """Configuration and current size of one named limiter."""

    name: str = Field(..., description="Registry name shared by the protected routes.")
    window_ms: int = Field(..., description="Fixed window length in milliseconds.")
    max_requests: int = Field(..., description="Requests allowed per key per window.")
    tracked_keys: int | None = Field(
        default=None,
        description="Keys currently held in memory (None if the store cannot tell).",
    )


class RateLimiterListResponse(BaseModel):
    limiters: List[RateLimiterInfo] = Field(default_factory=list)
