"""
Alembic environment for the records store.

The URL comes from eventhub settings (DATABASE_URL), never from alembic.ini.
Online migrations reuse `Database.from_settings`, so they connect exactly
the way the application does.
"""

import asyncio
from logging.config import fileConfig

from alembic import context

from eventhub.config import settings
from eventhub.database import Base, Database
from eventhub.models.record import Record  # noqa: F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def configure(**options) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **options)


def migrate(connection) -> None:
    configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def migrate_online() -> None:
    database = Database.from_settings(settings)
    try:
        async with database.engine.connect() as connection:
            await connection.run_sync(migrate)
    finally:
        await database.dispose()


if context.is_offline_mode():
    # SQL script to stdout, no connection
    configure(url=settings.database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(migrate_online())
