"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Optional

from sqlalchemy import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import AsyncAdaptedQueuePool

from db.db_config import MySqlSettings, get_settings
from utils.logger import logger

# Create a base class for declarative models
Base = declarative_base()


def get_safe_database_url(settings: Optional[MySqlSettings] = None) -> str:
    """
    Get a safe database URL string for logging purposes with password masked.

    Returns:
        A database URL string with the password replaced by '***'
    """
    settings = settings or get_settings()
    return (
        f"mysql+aiomysql://{settings.DB_USER}:***@"
        f"{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"
    )


def build_database_url(settings: Optional[MySqlSettings] = None) -> URL:
    """Construct the database URL with the SQLAlchemy URL object."""
    settings = settings or get_settings()
    return URL.create(
        drivername="mysql+aiomysql",
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def build_engine(settings: Optional[MySqlSettings] = None) -> AsyncEngine:
    """
    Create the asynchronous engine used by the record store.

    Called once from the application lifespan; nothing connects at import time.
    """
    settings = settings or get_settings()
    # Never log the URL object itself, it carries the password
    logger.info(
        "Initializing database connection to: {}", get_safe_database_url(settings)
    )
    return create_async_engine(
        build_database_url(settings),
        poolclass=AsyncAdaptedQueuePool,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=False,
        connect_args={
            "connect_timeout": 15,
            "charset": "utf8mb4",
        },
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create a factory for asynchronous database sessions."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables for the declared models."""
    # Import models so they register on Base.metadata
    import model.campaign  # noqa: F401
    import model.instance  # noqa: F401
    import model.telemetry  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables are ready.")
