"""
Shared fixtures.

Settings are pinned through the environment before anything calls
`get_settings()`, so no real .env or Supabase project is needed.
"""

import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
os.environ.setdefault("ENVIRONMENT", "local")

from fakes import FakeStore  # noqa: E402

from gymhub.core import Settings  # noqa: E402
from gymhub.services.auth import AdminSession  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        reminder_days_before=7,
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def login_time() -> datetime:
    return datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def session(login_time: datetime) -> AdminSession:
    return AdminSession(
        admin_id="admin-1",
        email="admin@gymhub.test",
        name="Alex",
        issued_at=login_time,
    )


@pytest.fixture
def fresh_session():
    """Factory for a session issued at a given moment."""

    def _make(issued_at: datetime) -> AdminSession:
        return AdminSession(
            admin_id="admin-1",
            email="admin@gymhub.test",
            name="Alex",
            issued_at=issued_at,
        )

    return _make
