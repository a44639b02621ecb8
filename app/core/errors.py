"""Application-level exception types.

This module defines domain errors used across the service, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context returned to clients."""

    limiter: str
    limit: int
    retry_after: int
    reset_time: int


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


@dataclass
class RateLimitAppError(AppError):
    """Raised when a caller exhausted its quota for the current window.

    Attributes:
        headers: Rate limit response headers to send with the 429.
    """

    headers: dict[str, str] | None = None
