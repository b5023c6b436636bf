"""Database configuration with async SQLAlchemy and connection pooling."""
import os
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)

from taskgraph.config import settings
from taskgraph.logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.database_url
IS_SQLITE = settings.is_sqlite


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    # Per-connection: foreign keys drive the ON DELETE CASCADE of edges and subtasks
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with settings appropriate for the backend."""
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)
        return engine
    # PostgreSQL: QueuePool with proper connection pooling
    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,  # Verify connections are alive
    )


engine: AsyncEngine = create_engine_for(DATABASE_URL, echo=settings.database_echo)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db_engine() -> None:
    """
    Initialize the database engine.

    For SQLite: creates the parent directory and switches to WAL mode.
    For PostgreSQL: verifies connection.
    """
    if IS_SQLITE:
        database_path = DATABASE_URL.replace("sqlite+aiosqlite:///", "")
        db_dir = os.path.dirname(database_path)
        if db_dir and database_path != ":memory:":
            os.makedirs(db_dir, exist_ok=True)

        async with engine.begin() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
    else:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Connected to PostgreSQL")


async def close_db_engine() -> None:
    """Close the database engine and all connections."""
    await engine.dispose()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async session.

    Usage:
        @router.get("/items")
        async def list_items(session: AsyncSession = Depends(get_async_session)):
            result = await session.execute(select(Item))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
