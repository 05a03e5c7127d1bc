"""Root test fixtures shared across all test types.

This conftest sets the environment the settings object needs before any
application import. Database fixtures live in tests/integration/conftest.py.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-that-is-long-enough-0123")
os.environ.setdefault("INVITE_TOKEN_SECRET", "test-invite-token-secret-long-enough-4567")
# Cheap hashing keeps account-creation tests fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.pop("RESEND_API_KEY", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import Iterator

import pytest

from src.accessgrant.core.config import get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def settings_override(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Let a test change settings through environment variables.

    Usage: ``monkeypatch.setenv(...)`` inside the test, then call
    ``get_settings.cache_clear()``; the cache is cleared again on teardown.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
