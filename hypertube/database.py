"""
Hypertube API — Store Engine & Session Factory
===============================================

What:  Async SQLAlchemy engine factory, session factory, and declarative base.
Why:   Centralizes all store connection logic in one place.
How:   create_engine_from_settings() builds an async engine with pooling;
       create_session_factory() binds sessions to it. Both are called once by
       AppContext.from_settings(); nothing here is a module-level global.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local runs) uses SQLAlchemy's default pool for the driver
    and takes none of these arguments.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from hypertube.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object between the models, Alembic and the test
    fixtures that create tables.
    """
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for the configured store.

    The connection pool is the only resource shared by concurrent requests;
    it is owned and synchronized by the driver.
    """
    options = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Session factory bound to the engine.

    expire_on_commit=False: records stay readable after commit, the stores
    convert them to plain documents outside the session.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
