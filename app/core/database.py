"""Async database engine, session factory and startup helpers."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    echo=settings.db.echo,
    pool_pre_ping=True,
    # Disable prepared statement cache for PgBouncer compatibility
    connect_args={"statement_cache_size": 0},
)

# Sessions keep loaded objects usable after commit; repositories commit per write
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_maker() as session:
        yield session


async def check_database() -> dict:
    """Run ``SELECT 1`` and report the outcome instead of raising."""
    try:
        async with engine.connect() as conn:
            await conn.scalar(text("SELECT 1"))
    except Exception as e:
        LOGGER.error("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


async def init_database(create_tables: bool = True) -> None:
    """Verify connectivity and create missing tables.

    Existing tables are never altered; schema changes go through Alembic.
    """
    LOGGER.info("Initializing database connection...")
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if create_tables:
            # Register the models on Base.metadata
            import app.database.models  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)
    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    LOGGER.info("Closing database connection...")
    await engine.dispose()
