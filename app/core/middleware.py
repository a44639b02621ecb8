"""HTTP middleware for request ID propagation, timing and rate limit headers.

Every response carries the request ID (taken from the incoming header when
present, otherwise a fresh UUID) and the handling duration. The ID is kept in
a context variable while the request runs so log records pick it up.
Rate limit headers recorded by the ``rate_limit`` dependency are copied onto
the outgoing response.

Usage:
    app.middleware("http")(rate_limit_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a correlation ID to the request and echo it on the response.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` (or the
            configured header) and ``X-Request-Duration-ms`` added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def rate_limit_headers_middleware(request: Request, call_next) -> Response:
    """Copy headers left by the ``rate_limit`` dependency onto the response.

    Runs after the route so handlers returning their own ``Response`` still
    get ``X-RateLimit-*``. Headers the response already carries are kept.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with rate limit headers added.
    """

    response: Response = await call_next(request)
    headers = getattr(request.state, "rate_limit_headers", None)
    for name, value in (headers or {}).items():
        response.headers.setdefault(name, value)
    return response
