"""Application factory for the FastAPI app.

Centralizes app construction (middleware, handlers, routers, limiter
registry) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.registry import RateLimiterRegistry
from app.api.routes import health_router, rate_limits_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import rate_limit_headers_middleware, request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import install_rate_limiter_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    registry: RateLimiterRegistry = app.state.rate_limiters
    logger.info("rate_limit.registry_cleared", extra={"limiters": len(registry)})
    registry.clear()


def create_app(registry: RateLimiterRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        registry: Limiter registry to share with the routes; a fresh one is
            created when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Disc Lost & Found API",
        description=(
            "Backend for returning lost disc golf discs to their owners. "
            "Routes are protected by per-client fixed-window rate limits and "
            "answer 429 with X-RateLimit-* and Retry-After headers when a "
            "client exceeds its quota."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=_lifespan,
    )

    install_rate_limiter_registry(app, registry)

    app.middleware("http")(rate_limit_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
