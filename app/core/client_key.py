"""Derive the rate limit key for an inbound request.

Resolution order:
1. A caller-supplied extractor (e.g. keyed on the authenticated user).
2. The first ``X-Forwarded-For`` entry, then ``X-Real-IP``, then
   ``CF-Connecting-IP``.
3. The socket peer address.
4. ``"unknown"``: unidentifiable clients share one bucket instead of
   bypassing the limit.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Optional

from fastapi import Request

from app.core.config import settings

UNKNOWN_CLIENT_KEY = "unknown"

KeyExtractor = Callable[[Request], Optional[str]]

# Checked in order; the first non-empty value wins
_PROXY_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def _first_forwarded_value(header_value: str | None) -> str | None:
    if not header_value:
        return None
    return header_value.split(",")[0].strip() or None


def get_client_ip(request: Request) -> str | None:
    """Return the best guess of the client address, or None."""

    if settings.app.rate_limit_trust_proxy_headers:
        for name in _PROXY_HEADERS:
            value = request.headers.get(name)
            if name == "x-forwarded-for":
                value = _first_forwarded_value(value)
            elif value:
                value = value.strip()
            if value:
                return value

    if request.client and request.client.host:
        return request.client.host
    return None


def extract_rate_limit_key(
    request: Request, key_extractor: KeyExtractor | None = None
) -> str:
    """Build the limiter key for ``request``.

    Args:
        request: FastAPI request.
        key_extractor: Optional custom extractor; a falsy result falls back
            to the client address.

    Returns:
        str: Non-empty limiter key.
    """

    if key_extractor is not None:
        key = key_extractor(request)
        if key:
            return key

    return get_client_ip(request) or UNKNOWN_CLIENT_KEY


def user_key_extractor(request: Request) -> str | None:
    """Key on the ``Authorization`` header so each user gets its own quota.

    The header value is hashed so bearer tokens never end up as map keys.
    """

    authorization = request.headers.get("authorization")
    if not authorization:
        return None
    return f"user:{hashlib.sha256(authorization.encode()).hexdigest()[:16]}"
