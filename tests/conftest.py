"""Shared test fixtures."""

# ruff: noqa: E402  -- settings are read at import time, env must be set first

import os

os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def clear_overrides():
    """Reset FastAPI dependency overrides after a router test."""
    yield app.dependency_overrides
    app.dependency_overrides.clear()
