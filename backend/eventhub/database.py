"""
EventHub Backend — Database Context
====================================

What:  Async SQLAlchemy engine, session factory, and FastAPI session dependency.
How:   `Database` owns one engine (connection pool) and one session factory.
       `create_app()` builds it once and stores it on `app.state.database`;
       route handlers receive a per-request session through `get_db_session`.
Who:   Used by the router factory, the health check, the lifespan hooks,
       and the test suite (which injects an in-memory SQLite database).
When:  Engine is created with the app (connections open lazily on first use);
       sessions are created per request; the engine is disposed on shutdown.

Connection Pooling Strategy (PostgreSQL):
    pool_size:         Persistent connections for normal load
    max_overflow:      Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs skip the pool options; aiosqlite uses its own pool class.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from eventhub.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for autogenerate and
    `Database.create_schema()` uses for local development and tests.
    """
    pass


class Database:
    """
    Shared database handle for the whole process.

    Attributes:
        engine:           AsyncEngine managing the connection pool
        session_factory:  async_sessionmaker producing AsyncSession objects

    One instance per application. Requests never share a session, only
    the pool behind it.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        # expire_on_commit=False: ORM objects stay readable after commit,
        # which the services rely on when building responses
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the engine described by `settings.database_url`."""
        options = {
            "echo": settings.log_level == "DEBUG",
        }
        if not settings.is_sqlite:
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        engine = create_async_engine(settings.database_url, **options)
        return cls(engine)

    async def create_schema(self) -> None:
        """
        Create all tables registered on `Base.metadata` if they are missing.

        Used when AUTO_CREATE_SCHEMA is enabled and by the test suite.
        Deployments use the Alembic migrations instead.
        """
        # Register models on the metadata before create_all
        from eventhub.models import record  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured (%d tables)", len(Base.metadata.tables))

    async def ping(self) -> bool:
        """Run `SELECT 1`; returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close every pooled connection. Called from the lifespan shutdown."""
        await self.engine.dispose()


# ── Request Dependencies ──────────────────────────────────────────────────

def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's `Database`."""
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the application's factory
        2. Yields it to the route handler
        3. On error: rolls back whatever the handler left pending
        4. Always: closes the session (returns the connection to the pool)

    Services commit their own single-document transaction, so nothing is
    committed here; store errors are raised inside the handler where they
    can be mapped to DatabaseError.

    Example usage in a route:
        @router.get("/events")
        async def list_records(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
