# bizdir/db/session.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bizdir.core.config import settings
from bizdir.core.exceptions import BaseAPIException, DatabaseError
from bizdir.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)

# Global engine instance, created lazily so importing the package never connects.
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def create_database_engine() -> AsyncEngine:
    """Create and configure the async database engine."""
    global engine, AsyncSessionLocal

    if engine is not None:
        return engine

    if settings.is_testing:
        # Use NullPool for tests to ensure clean state
        engine = create_async_engine(
            settings.database_url,
            poolclass=NullPool,
            echo=settings.debug,
        )
    else:
        engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,
            echo=settings.debug,
        )

    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info(
        "database.engine.created",
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        testing=settings.is_testing,
    )

    return engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if AsyncSessionLocal is None:
        create_database_engine()
    return AsyncSessionLocal


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    session = get_sessionmaker()()

    try:
        yield session
    except BaseAPIException:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        logger.error("database.session_error", error=str(e))
        await session.rollback()
        raise DatabaseError(
            message="Database session error",
            details={"error": str(e)},
        ) from e
    finally:
        await session.close()


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Context manager used outside request handling (CLI, scripts)."""
    session = get_sessionmaker()()
    try:
        yield session
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("database.transaction_error", error=str(e))
        raise DatabaseError(
            message="Database transaction failed",
            details={"error": str(e)},
        ) from e
    finally:
        await session.close()


async def dispose_engine() -> None:
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        logger.info("database.connection_closed")
    engine = None
    AsyncSessionLocal = None
