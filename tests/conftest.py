"""Pytest configuration and fixtures."""
import logging
import os

# Settings are read once at import time; pin the test values first.
os.environ.setdefault("SOUNDBYTES_ACCESS_TOKEN_SECRET", "test-secret-for-unit-tests-only-32char")
os.environ["SOUNDBYTES_PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["SOUNDBYTES_RATE_LIMIT_ENABLED"] = "false"
os.environ["SOUNDBYTES_ENRICHMENT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from soundbytes.main import app
from soundbytes.auth.passwords import hash_password
from soundbytes.auth.tokens import generate_access_code
from soundbytes.db import database
from soundbytes.db.database import Base, configure_sqlite_engine, get_db
from soundbytes.db.models import User
from soundbytes.services.track_registry import TrackRegistry, get_track_registry

TEST_PASSWORD = "correct-horse-battery"


def pytest_configure(config):
    """Ensure asyncio_mode is auto so async fixtures work when pyproject is not in cwd."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"
    logging.getLogger("httpcore").setLevel(logging.CRITICAL)


@pytest_asyncio.fixture
async def db_session():
    """Create an in-memory test database session."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    old_engine = database._engine
    old_factory = database._async_session_factory
    database._engine = engine
    database._async_session_factory = async_session_factory
    try:
        async with async_session_factory() as session:
            async def override_get_db():
                yield session
            app.dependency_overrides[get_db] = override_get_db
            app.dependency_overrides[get_track_registry] = lambda: TrackRegistry()
            yield session
            app.dependency_overrides.clear()
    finally:
        database._engine = old_engine
        database._async_session_factory = old_factory
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session):
    """Create an async test client bound to the test database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def registry():
    """A registry with enrichment off."""
    return TrackRegistry()


# -----------------------------------------------------------------------------
# Users and auth
# -----------------------------------------------------------------------------


@pytest.fixture
def test_password():
    return TEST_PASSWORD


@pytest.fixture
def make_user(db_session):
    """Factory: insert a user with ``TEST_PASSWORD`` and return it."""

    async def _make(username: str) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=hash_password(TEST_PASSWORD),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user):
    return await make_user("bob")


def bearer(user: User) -> dict[str, str]:
    """Authorization headers for ``user`` (1 hour token)."""
    token = generate_access_code(user_id=user.id, username=user.username, duration_hours=1)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Fixture form of ``bearer`` for users created inside a test."""
    return bearer


@pytest.fixture
def alice_headers(alice):
    return bearer(alice)


@pytest.fixture
def bob_headers(bob):
    return bearer(bob)
