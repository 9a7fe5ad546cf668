"""
Pytest fixtures for Ballotline backend tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_DB", "ballotline_test")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
async def app(mock_db_session: AsyncMock) -> AsyncGenerator[Any, None]:
    """FastAPI application with the database dependency replaced by a mock."""
    from db.session import get_db
    from main import app as fastapi_app

    async def _get_db() -> AsyncGenerator[AsyncMock, None]:
        yield mock_db_session

    fastapi_app.dependency_overrides[get_db] = _get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Origin": "http://localhost:3000"},
    ) as ac:
        yield ac


@pytest.fixture
def voter_user() -> Any:
    from schemas.user import CurrentUser

    return CurrentUser(
        id="11111111-1111-4111-8111-111111111111",
        email="voter@example.com",
        first_name="Vera",
        last_name="Voter",
        roles=["Voter"],
    )


@pytest.fixture
def admin_user() -> Any:
    from schemas.user import CurrentUser

    return CurrentUser(
        id="22222222-2222-4222-8222-222222222222",
        email="admin@example.com",
        first_name="Ada",
        last_name="Admin",
        roles=["Admin"],
    )


@pytest.fixture
def as_user(app: Any) -> Any:
    """Authenticate requests as the given ``CurrentUser`` without a token."""
    from api.deps import get_current_user

    def _login(user: Any) -> Any:
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer header carrying a real signed token for the voter fixture id."""
    from core.security import create_access_token

    token = create_access_token("11111111-1111-4111-8111-111111111111", roles=["Voter"])
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
