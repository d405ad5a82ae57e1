"""
Bug Tracker Backend: Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Services and routes run against a fresh in-memory SQLite database
       per test; the tag model is replaced by a stub so no test touches the
       network.

Fixture Hierarchy (all function-scoped):
    db_engine ─── db_session ─┬── reporter / other_user
                              └── bug_factory
    stub_tag_generator
    test_app ─── test_client, auth_headers, other_auth_headers
"""

import os

# Override settings for testing BEFORE any application imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-real-0123456789abcdef"
os.environ["OPENROUTER_API_KEY"] = "test-key-not-real"
os.environ["LLM_PROVIDER"] = "openrouter"

from typing import List, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bugtracker.config import settings  # noqa: E402
from bugtracker.database import Base, build_session_factory, get_db_session  # noqa: E402
from bugtracker.models import Bug, User  # noqa: E402
from bugtracker.models.bug import SEVERITY_PRIORITY  # noqa: E402
from bugtracker.security import create_access_token  # noqa: E402


class StubTagGenerator:
    """Stands in for TagGenerator; records every call and returns fixed tags."""

    def __init__(self, tags: Optional[List[str]] = None):
        self.tags = tags or ["auth", "login"]
        self.calls = []

    async def generate_tags(self, title: str, description: str) -> List[str]:
        self.calls.append((title, description))
        return list(self.tags)

    async def health_check(self) -> str:
        return "available"

    async def aclose(self) -> None:
        pass


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    One in-memory SQLite database per test.

    StaticPool keeps a single connection, so every session opened on this
    engine (the test's and the app's) sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def reporter(db_session) -> User:
    user = User(username="alice", email="alice@example.com", password_hash="x")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def other_user(db_session) -> User:
    user = User(username="bob", email="bob@example.com", password_hash="x")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def bug_factory(db_session, reporter):
    """
    Insert bugs directly, bypassing the mutation service.

    Usage:
        bug = await bug_factory(title="Crash", tags=["ui", "crash"])
    """

    async def _create(
        title: str = "Sample bug",
        description: str = "Something is broken",
        severity: str = "Medium",
        status: str = "Open",
        tags: Optional[List[str]] = None,
        reported_by: Optional[User] = None,
        assigned_to: Optional[User] = None,
    ) -> Bug:
        bug = Bug(
            title=title,
            description=description,
            severity=severity,
            status=status,
            priority=SEVERITY_PRIORITY[severity],
            reporter=reported_by or reporter,
            assignee=assigned_to,
        )
        bug.tags = tags if tags is not None else ["bug", "issue"]
        db_session.add(bug)
        await db_session.commit()
        return bug

    return _create


@pytest.fixture
def mock_db_session():
    """AsyncMock session for tests that only need to observe calls."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def stub_tag_generator():
    return StubTagGenerator()


@pytest.fixture
def test_app(session_factory, stub_tag_generator):
    from bugtracker.main import create_app

    app = create_app(config=settings, tag_generator=stub_tag_generator)

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_list(test_client, auth_headers):
            response = await test_client.get("/api/bugs", headers=auth_headers)
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(reporter):
    token = create_access_token(reporter.id, settings.jwt_secret_key, settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user):
    token = create_access_token(other_user.id, settings.jwt_secret_key, settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}
