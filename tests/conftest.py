# =============================================================================
# IDENTITY API SCAFFOLD - TEST CONFIGURATION
# =============================================================================
# File: tests/conftest.py
# Description: Pytest fixtures for testing with in-memory SQLite and fakeredis
# =============================================================================

import os

# Fast hashing and quiet, deterministic settings; must precede app imports
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncGenerator, Generator, Optional

import fakeredis.aioredis
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from db.adapters.redis_adapter import RedisAdapter
from db.adapters.sqlite_adapter import SQLiteAdapter
from db.factory import DBFactory
from core.config import settings
from main import create_application


STRONG_PASSWORD = "Str0ng!Passw0rd"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def db_adapter() -> AsyncGenerator[SQLiteAdapter, None]:
    """
    Create in-memory SQLite adapter for testing.

    Yields fresh database for each test.
    """
    adapter = SQLiteAdapter.create_for_testing()
    await adapter.connect()
    await adapter.create_tables()

    yield adapter

    await adapter.disconnect()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_adapter: SQLiteAdapter) -> AsyncGenerator[AsyncSession, None]:
    """Session committed on exit, like a request-scoped one."""
    async with db_adapter.get_session() as session:
        yield session


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def fake_redis() -> RedisAdapter:
    return RedisAdapter.from_client(fakeredis.aioredis.FakeRedis(decode_responses=True))


@pytest.fixture(scope="function")
def client(fake_redis: RedisAdapter) -> Generator[TestClient, None, None]:
    """
    Test client over a fresh in-memory database and fake Redis.

    Entering the client runs the lifespan: tables are created and the
    roles and admin account seeded.
    """
    DBFactory.reset()
    DBFactory._db_adapter = SQLiteAdapter.create_for_testing()
    DBFactory._redis_adapter = fake_redis

    app = create_application()
    with TestClient(app) as test_client:
        yield test_client

    DBFactory.reset()


# =============================================================================
# HELPERS
# =============================================================================

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(
    client: TestClient,
    email: str = "alice@example.com",
    password: str = STRONG_PASSWORD,
    user_name: Optional[str] = None,
    **extra,
):
    payload = {
        "email": email,
        "password": password,
        "confirm_password": password,
        **extra,
    }
    if user_name is not None:
        payload["user_name"] = user_name
    return client.post("/api/auth/register", json=payload)


def login(
    client: TestClient,
    email_or_username: str,
    password: str = STRONG_PASSWORD,
    remember_me: bool = False,
):
    return client.post(
        "/api/auth/login",
        json={
            "email_or_username": email_or_username,
            "password": password,
            "remember_me": remember_me,
        },
    )


# =============================================================================
# USER FIXTURES
# =============================================================================

@pytest.fixture
def registered_user(client: TestClient) -> dict:
    """AuthResponse body of a freshly registered regular user."""
    response = register_user(
        client,
        email="alice@example.com",
        user_name="alice",
        first_name="Alice",
        last_name="Liddell",
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user_token(registered_user: dict) -> str:
    return registered_user["token"]


@pytest.fixture
def admin_token(client: TestClient) -> str:
    response = login(client, settings.admin_email, settings.admin_password)
    assert response.status_code == 200, response.text
    return response.json()["token"]
