"""Shared pytest fixtures configured to use SQLite in-memory for tests."""

import logging
import os
import tempfile
from uuid import uuid4

# must be set before notesync is imported: the engine and logging are built at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("NOTESYNC_SKIP_LIFESPAN_DB", "1")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/15")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="notesync-logs-"))

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from notesync.core.models import BaseModel, User
from notesync.database import build_engine, get_db_session
from notesync.main import app
from notesync.security.jwt import create_access_token
from notesync.security.password import hash_password

# Silence extremely verbose DEBUG logs from aiosqlite to keep test output readable
logging.getLogger("aiosqlite").setLevel(logging.WARNING)

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
async def test_engine():
    """Fresh SQLite in-memory database per test."""
    engine = build_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,  # keep the same memory DB across connections
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def async_client(session_maker):
    """HTTP client against the app, one DB session per request."""

    async def _override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = _override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def create_user(session_maker):
    """Factory inserting an account directly."""

    async def _create(name: str = "Test User", email: str = None, is_activated: bool = True) -> User:
        async with session_maker() as session:
            user = User(
                name=name,
                email=email or f"user_{uuid4().hex[:8]}@example.com",
                password_hash=hash_password(DEFAULT_PASSWORD),
                is_activated=is_activated,
                preferences={},
            )
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user."""

    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def owner(create_user):
    return await create_user(name="Owner")


@pytest.fixture
async def collaborator(create_user):
    return await create_user(name="Collaborator")


@pytest.fixture
async def stranger(create_user):
    return await create_user(name="Stranger")
