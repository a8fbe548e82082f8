"""Integration test fixtures for the ingestion server.

Provides an async HTTP client wired to an in-memory SQLite database and a
per-test uploads directory, so routes run against real repository
operations and real file writes.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.core.config import get_settings
from src.services.storage import database


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path, monkeypatch):
    """Point the server's upload folder at a temp dir for each test."""
    target = tmp_path / "uploads"
    monkeypatch.setenv("UPLOADS_DIR", str(target))
    get_settings.cache_clear()
    yield target
    get_settings.cache_clear()


@pytest.fixture
def app(uploads_dir):
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
async def async_client(app, db_engine):
    """AsyncClient backed by the in-memory test engine.

    Injects the test engine into the database module so that all routes
    use the same in-memory SQLite with tables already created.
    """
    database._engine = db_engine
    database._session_factory = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    database.reset_engine()


@pytest.fixture
async def seeded_client(async_client):
    """Client whose database already holds eight sentences."""
    resp = await async_client.post(
        "/api/import-sentences",
        json=[{"text": f"Kalimat nomor {n}"} for n in range(1, 9)],
    )
    assert resp.status_code == 200
    return async_client
