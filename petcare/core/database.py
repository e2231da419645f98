"""
Database connection and session management.

Uses SQLAlchemy with async support (asyncpg driver).
"""

from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from typing import AsyncGenerator

from petcare.core.config import settings

# Base class for all models
Base = declarative_base()

# Async engine for the API and Celery tasks (asyncpg)
async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/tiers")
        async def list_tiers(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(SubscriptionTier))
            return result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession):
    """
    Run a block atomically on the given session.

    AsyncSession autobegins on the first statement, so a second begin()
    would fail. A SAVEPOINT is used when a transaction is already open;
    otherwise a new transaction is started and committed on exit.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield
        return
    async with session.begin():
        yield


async def init_db():
    """
    Initialize database (create tables).

    For production, use Alembic migrations instead.
    This is useful for testing and local development.
    """
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db() -> bool:
    """Return True if the database answers a trivial query."""
    from sqlalchemy import text

    async with async_engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def close_db():
    """Close database connections gracefully."""
    await async_engine.dispose()
