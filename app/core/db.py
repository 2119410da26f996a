# app/core/db.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy import text
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional
import time

from app.core.config import settings
from app.core.db_base import Base

logger = logging.getLogger(__name__)

# Initialize engine as None - it will be created during init_db
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker] = None


def create_db_engine(database_url: str) -> AsyncEngine:
    """Create the async engine, with SQLite specific connect args when needed"""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=settings.DB_ECHO,
            future=True,
            connect_args={"check_same_thread": False}  # Needed for SQLite
        )

    return create_async_engine(
        database_url,
        echo=settings.DB_ECHO,
        future=True,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


async def init_db() -> bool:
    """Initialize database connection and create tables"""
    global engine, async_session_factory

    # Import models here so they are registered on Base.metadata
    from app.models.appointment import Appointment  # noqa: F401
    from app.models.table_config import TableConfig  # noqa: F401

    start_time = time.time()
    try:
        engine = create_db_engine(settings.SQLALCHEMY_DATABASE_URI)

        # Create session factory
        async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)

        elapsed = time.time() - start_time
        logger.info(f"Database initialization completed in {elapsed:.2f}s")
        return True
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}", exc_info=True)
        raise


async def close_db() -> None:
    """Dispose the engine and forget the session factory"""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")

    engine = None
    async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    # Ensure database is initialized
    if async_session_factory is None:
        await init_db()

    session = async_session_factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for getting database session outside of request handling"""
    # Ensure database is initialized
    if async_session_factory is None:
        await init_db()

    session = async_session_factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database context error: {str(e)}")
        await session.rollback()
        raise
    finally:
        await session.close()
