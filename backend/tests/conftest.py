"""
EventHub Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own in-memory SQLite database (aiosqlite +
       StaticPool, so all sessions share one connection) with the schema
       created, and a deterministic clock for lifecycle timestamps.

Fixture Hierarchy (all function-scoped):
    ├── clock:           FakeClock, one second later on every call
    ├── database:        Database on a fresh in-memory SQLite engine
    ├── test_settings:   Settings pointing at SQLite, quiet logging
    ├── test_client:     HTTPX AsyncClient bound to an app built on the above
    └── mock_db_session: AsyncMock session for store-failure paths
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

# Keep the import-time app in eventhub.main off PostgreSQL
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from eventhub.config import Settings
from eventhub.database import Database
from eventhub.models.record import Record


class FakeClock:
    """Callable clock advancing by `step` on every call."""

    def __init__(
        self,
        start: datetime = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


def naive(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; compare timestamps without it."""
    return value.replace(tzinfo=None) if value is not None else None


async def fetch_record(database: Database, collection: str, record_id) -> Optional[Record]:
    """Load a record in a short-lived session of its own."""
    async with database.session_factory() as session:
        return await session.get(Record, (collection, record_id))


async def seed_record(database: Database, collection: str, payload: Dict[str, Any], **columns) -> Record:
    """Insert a row directly, bypassing the service (read-only collections, tie cases)."""
    record = Record(collection=collection, payload=payload, **columns)
    async with database.session_factory() as session:
        session.add(record)
        await session.commit()
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def database():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db = Database(engine)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def test_settings():
    return Settings(database_url="sqlite+aiosqlite://", log_level="WARNING")


@pytest_asyncio.fixture
async def test_client(database, test_settings, clock):
    """
    HTTPX AsyncClient talking to a freshly built app.

    Usage:
        async def test_status(test_client):
            response = await test_client.get("/")
            assert response.status_code == 200
    """
    from eventhub.main import create_app

    app = create_app(settings=test_settings, database=database, clock=clock)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_db_session():
    """
    A mock async database session (no real DB).

    Usage:
        mock_db_session.commit.side_effect = OperationalError(...)
        await service.create_record(mock_db_session, {...})
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session
