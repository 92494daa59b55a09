"""
Wellspring Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures (function-scoped):
    ├── mock_db_session: Mock AsyncSession (no real DB needed)
    ├── make_session: Factory for WellnessSession rows with sane defaults
    ├── owner_headers: Identity header for owner-only endpoints
    └── test_client: HTTPX AsyncClient bound to the app, DB dependency mocked
"""

import os

# Must run before anything imports app.config: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import settings  # noqa: E402
from app.models.session import WellnessSession  # noqa: E402

OWNER_ID = "user_test_owner"


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_mine(mock_db_session, make_session):
            mock_db_session.execute.return_value = result_with(make_session())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_session():
    """Factory building detached WellnessSession rows."""

    def _make(**overrides) -> WellnessSession:
        now = datetime.now(timezone.utc)
        values = {
            "id": uuid4(),
            "owner_id": OWNER_ID,
            "title": "Morning Flow",
            "tags": ["yoga"],
            "json_url": "morning-flow.json",
            "content": {"title": "Morning Flow", "exercises": []},
            "is_draft": True,
            "is_published": False,
            "created_at": now,
            "updated_at": now,
            "last_auto_save": now,
        }
        values.update(overrides)
        return WellnessSession(**values)

    return _make


def scalar_result(value):
    """execute() result whose scalar_one_or_none() returns `value`."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def page_results(rows, total):
    """execute() side effects for one page query followed by its COUNT query."""
    page = MagicMock()
    page.scalars.return_value.all.return_value = list(rows)
    count = MagicMock()
    count.scalar.return_value = total
    return [page, count]


@pytest.fixture
def owner_headers():
    return {settings.auth_user_header: OWNER_ID}


@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    The database dependency is replaced with `mock_db_session`, so endpoint
    tests configure query results on that fixture.
    """
    from app.database import get_db_session
    from app.main import app

    async def _override_db():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
