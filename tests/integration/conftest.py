"""Integration-test fixtures (requires running PG + Redis with migrations applied).

Pre-condition: PostgreSQL and Redis reachable at DATABASE_URL / REDIS_URL with
`alembic upgrade head` applied. Run with MB_INTEGRATION=1; without it every test
under tests/integration is skipped.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.main import app

_ENABLED = os.environ.get("MB_INTEGRATION") == "1"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if _ENABLED:
        return
    skip = pytest.mark.skip(reason="set MB_INTEGRATION=1 to run against PostgreSQL + Redis")
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    settings.DEBUG = True  # enables /auth/session token minting
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
