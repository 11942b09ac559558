"""API test fixtures - internal client over a mocked DB session.

The internal router only needs a shared secret and a session, so these tests
run without a database: get_db is overridden with a MagicMock session and
domain operations are patched per test.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.config.settings import settings

INTERNAL_SECRET = "test-internal-secret"


@pytest.fixture
def mock_db():
    db = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


async def _client(mock_db, secret: str, headers: dict[str, str]):
    from app.core.database import get_db
    from app.main import app

    async def override_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_db
    try:
        with patch.object(settings, "internal_api_secret", secret):
            transport = ASGITransport(app=app)
            async with AsyncClient(
                transport=transport, base_url="http://test", headers=headers
            ) as client:
                yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def internal_client(mock_db):
    """Client sending the correct X-Internal-Secret."""
    async for client in _client(mock_db, INTERNAL_SECRET, {"X-Internal-Secret": INTERNAL_SECRET}):
        yield client


@pytest.fixture
async def wrong_secret_client(mock_db):
    """Client sending a wrong X-Internal-Secret."""
    async for client in _client(mock_db, INTERNAL_SECRET, {"X-Internal-Secret": "nope"}):
        yield client


@pytest.fixture
async def no_secret_client(mock_db):
    """Client without the header."""
    async for client in _client(mock_db, INTERNAL_SECRET, {}):
        yield client


@pytest.fixture
async def unconfigured_client(mock_db):
    """Client against a server with no internal secret configured."""
    async for client in _client(mock_db, "", {"X-Internal-Secret": INTERNAL_SECRET}):
        yield client
