"""Pytest configuration and fixtures for taskgraph tests."""
import os

# Keep app settings away from any developer database before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_MIGRATE", "false")
os.environ.pop("REDIS_URL", None)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from taskgraph.main import app
from taskgraph.database import get_async_session
from taskgraph.models import Base
from taskgraph.services.locks import project_locks

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Configure pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )


def _sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


async def make_engine(url: str):
    """Create an engine with the schema in place."""
    kwargs = {}
    if url.endswith(":memory:"):
        # One shared connection keeps the in-memory database alive across sessions
        kwargs["poolclass"] = StaticPool
    engine = create_async_engine(
        url,
        echo=False,
        connect_args={"check_same_thread": False},
        **kwargs,
    )
    event.listen(engine.sync_engine, "connect", _sqlite_pragmas)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest.fixture(autouse=True)
def reset_project_locks():
    project_locks.reset()
    yield
    project_locks.reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = await make_engine(TEST_DATABASE_URL)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory):
    """Create test client with overridden database."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_session

    # No Redis in tests: event publishing becomes a no-op
    from taskgraph import dependencies
    dependencies.redis_client = None

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def engine_factory():
    """Build extra engines, e.g. file-backed ones shared by several sessions."""
    return make_engine
