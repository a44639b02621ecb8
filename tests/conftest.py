"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any ``app`` import so the settings object
is built for the testing environment.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_INCLUDE_HEADERS", "true")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("LOG_FORMAT", "plain")

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.registry import RateLimiterRegistry
from app.core.app_factory import create_app


@pytest.fixture
def registry() -> RateLimiterRegistry:
    return RateLimiterRegistry()


@pytest.fixture
def app(registry: RateLimiterRegistry):
    """Fresh application with its own limiter registry."""
    return create_app(registry=registry)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
