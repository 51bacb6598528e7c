"""Shared test fixtures for pytest.

We set minimal env defaults (e.g. SECRET_KEY) early so importing modules
that instantiate settings (core.security, main) succeeds without needing an
external .env file during tests.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient


os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

from fakes import make_access_token
from dependencies.auth import CurrentUser, get_current_user
from main import app


TEST_USER_ID = "user-123"


@pytest.fixture
def bearer_token() -> str:
    return make_access_token({"sub": TEST_USER_ID})


@pytest.fixture
def auth_headers(bearer_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {bearer_token}"}


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


async def _override_get_current_user_factory() -> CurrentUser:
    return CurrentUser(id=TEST_USER_ID, token="upstream-token")


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Async client with auth override (auto-auth)."""
    app.dependency_overrides[get_current_user] = _override_get_current_user_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
