"""Database connection management with async support and connection pooling."""

import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool

from fieldops.config.settings import Settings, get_settings
from fieldops.domain.exceptions import FieldOpsDomainException

logger = logging.getLogger(__name__)


class DatabaseConnectionException(FieldOpsDomainException):
    """Exception raised for database connection errors."""
    pass


_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_database_url(settings: Settings) -> str:
    """Construct database URL from settings, honouring an explicit ``database_url``."""
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql+asyncpg://{settings.postgres_user}:"
        f"{settings.postgres_password}@{settings.postgres_host}:"
        f"{settings.postgres_port}/{settings.postgres_db}"
    )


def build_engine_args(database_url: str, settings: Settings) -> Dict[str, Any]:
    """Engine keyword arguments for the configured backend."""
    engine_args: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}

    if database_url.startswith("sqlite"):
        return engine_args

    if settings.environment == "test":
        engine_args["poolclass"] = NullPool
    else:
        engine_args.update(
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,
        )
    engine_args["pool_pre_ping"] = True
    engine_args["connect_args"] = {
        "server_settings": {"application_name": settings.service_name},
    }
    return engine_args


def get_database_engine(settings: Settings | None = None) -> AsyncEngine:
    """Get or create the database engine.

    Args:
        settings: Application settings. Defaults to the cached settings.

    Returns:
        AsyncEngine: SQLAlchemy async engine

    Raises:
        DatabaseConnectionException: If engine creation fails
    """
    global _engine

    if _engine is None:
        if settings is None:
            settings = get_settings()

        try:
            database_url = get_database_url(settings)
            _engine = create_async_engine(database_url, **build_engine_args(database_url, settings))

            logger.info(f"Created database engine for {_engine.url.render_as_string(hide_password=True)}")

        except Exception as e:
            logger.error(f"Failed to create database engine: {e}")
            raise DatabaseConnectionException(
                f"Failed to create database engine: {e}",
                "DB_ENGINE_CREATION_FAILED",
                {"error": str(e)}
            ) from e

    return _engine


def get_async_session_factory(
    settings: Settings | None = None
) -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_database_engine(settings)

        _async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Created async session factory")

    return _async_session_factory


@asynccontextmanager
async def get_async_session(
    settings: Settings | None = None
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions with automatic cleanup.

    Domain exceptions raised inside the block propagate unchanged; any other
    error rolls back and is wrapped in ``DatabaseConnectionException``.
    """
    session_factory = get_async_session_factory(settings)

    async with session_factory() as session:
        try:
            yield session
        except FieldOpsDomainException:
            await session.rollback()
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise DatabaseConnectionException(
                f"Database session error: {e}",
                "DB_SESSION_ERROR",
                {"error": str(e)}
            ) from e


async def close_database_engine() -> None:
    """Close the database engine and clean up connections."""
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database engine closed")


async def create_all_tables(settings: Settings | None = None) -> None:
    """Create all tables. Used by tests and local development."""
    from .models import Base

    engine = get_database_engine(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Created all database tables")


async def drop_all_tables(settings: Settings | None = None) -> None:
    """Drop all tables. Deletes all data."""
    from .models import Base

    engine = get_database_engine(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.info("Dropped all database tables")
