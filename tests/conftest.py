"""
TripShare Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock AsyncSession for pure service unit tests
    ├── db_engine: File-backed SQLite database with all tables created
    ├── session_factory: async_sessionmaker bound to db_engine
    ├── coordinator: ToggleCoordinator on the test database (no retry backoff)
    ├── make_post: Inserts a post row with a given like count
    ├── auth_headers: Builds Authorization headers for a user id
    └── test_client: HTTPX AsyncClient wired to the test database

The concurrency tests need a real database: the uniqueness constraint and
the relative counter update are what make the toggle safe, and a mock
session cannot show that.
"""

import os
import tempfile
import time
import uuid
from datetime import datetime, timezone

# Override settings for testing BEFORE any tripshare imports
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="tripshare_test_"), "app.db")
)
os.environ["JWT_SECRET"] = "test-secret-not-real-0123456789abcdef"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from tripshare.config import settings  # noqa: E402
from tripshare.database import Base, build_engine, get_db_session, get_session_factory  # noqa: E402
from tripshare.models.community import CommunityLike, CommunityPost  # noqa: E402
from tripshare.services.toggle_coordinator import ToggleCoordinator  # noqa: E402


def make_token(user_id: str, expires_in: int = 3600, secret: str = None) -> str:
    payload = {"sub": user_id, "exp": int(time.time()) + expires_in}
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


# ══════════════════════════════════════════════════════════════════════════
# Mocked Session
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = post
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_post_data():
    now = datetime.now(timezone.utc)
    return {
        "id": str(uuid.uuid4()),
        "user_id": "author-1",
        "title": "Amazing Trip to Tokyo",
        "content": "Senso-ji Temple, Shibuya Crossing and the Tokyo Skytree.",
        "type": "TRIP_REVIEW",
        "destination": "Tokyo, Japan",
        "trip_id": None,
        "rating": 5,
        "tags": "culture,food,temples",
        "images": None,
        "is_public": True,
        "likes": 3,
        "views": 10,
        "created_at": now,
        "updated_at": now,
    }


# ══════════════════════════════════════════════════════════════════════════
# Real Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tripshare.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def coordinator(session_factory):
    return ToggleCoordinator(session_factory, retry_wait=0)


@pytest.fixture
def make_post(session_factory):
    """Insert a post directly; returns its id."""

    async def _make_post(likes: int = 0, is_public: bool = True, title: str = "Post", **fields) -> str:
        post = CommunityPost(
            user_id=fields.pop("user_id", "author-1"),
            title=title,
            content=fields.pop("content", "Some content"),
            type=fields.pop("type", "TRAVEL_TIP"),
            is_public=is_public,
            likes=likes,
            **fields,
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(post)
        return post.id

    return _make_post


@pytest.fixture
def add_likes(session_factory):
    """Insert like rows directly, bypassing the coordinator."""

    async def _add_likes(post_id: str, *user_ids: str) -> None:
        async with session_factory() as session:
            async with session.begin():
                for user_id in user_ids:
                    session.add(CommunityLike(post_id=post_id, user_id=user_id))

    return _add_likes


@pytest.fixture
def auth_headers():
    def _auth_headers(user_id: str = "user-a", secret: str = None) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, secret=secret)}"}

    return _auth_headers


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app, with both session dependencies
    pointed at the per-test database.
    """
    from tripshare.main import app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
