"""
Pytest configuration and shared fixtures for testing.
Sets up a throwaway SQLite document store and an ASGI test client.
"""

import os

# Environment must be in place before any service imports
os.environ["TEST_MODE"] = "1"  # disables rate limiting
os.environ["ENABLE_METRICS"] = "true"
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_FILE"] = ""
os.environ.setdefault("APP_ENV", "test")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from users_service.main import app
from users_service.db import Base
from users_service import db as app_db
from users_service import models  # noqa: F401  (registers the documents table)
from users_service.entities import User


AVATAR_URL = (
    "https://avatars.githubusercontent.com/u/7242003?s=460"
    "&u=733c50a2f50ba297ed30f6b5921a511c2f43bfee&v=4"
)


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """Create a fresh document store per test and point the service at it."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'users.db'}",
        echo=False,
        poolclass=NullPool,
    )

    test_session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    original_session = app_db.async_session
    app_db.async_session = test_session_maker

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    app_db.async_session = original_session
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(test_db_engine):
    """HTTP client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0
    ) as ac:
        yield ac


@pytest.fixture
def galileo():
    """A complete, valid user body."""
    return {
        "firstName": "Galileo",
        "lastName": "Galilei",
        "email": "galileo@email.com",
        "displayName": "Galileo Galilei",
        "isAdmin": True,
        "isFlagged": True,
        "feeds": ["https://dev.to/feed/galileogalilei"],
        "github": {
            "username": "galileogalilei",
            "avatarUrl": AVATAR_URL,
        },
    }


@pytest.fixture
def carl():
    """A second valid user body with a different email."""
    return {
        "firstName": "Carl",
        "lastName": "Sagan",
        "email": "carl@email.com",
        "displayName": "Carl Sagan",
        "isAdmin": True,
        "isFlagged": True,
        "feeds": ["https://dev.to/feed/carlsagan"],
        "github": {
            "username": "carlsagan",
            "avatarUrl": AVATAR_URL,
        },
    }


@pytest.fixture
def create_user(client):
    """POST a user body to the id derived from its email.

    Returns the User entity and the response so tests can compare them.
    """
    async def _create(body: dict):
        user = User(body)
        response = await client.post(f"/users/{user.id}", json=body)
        return user, response

    return _create
