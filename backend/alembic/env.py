"""
Alembic Migration Environment
===============================

What:  Runs the `schools` migrations against the configured database.

URL resolution (first match wins):
    1. `alembic -x dburl=<url> upgrade head`   (one-off target, e.g. a test DB)
    2. DATABASE_URL via school_directory.config.settings
    The sqlalchemy.url in alembic.ini is never used.

SQLite targets run in batch mode, since SQLite cannot ALTER most column
properties in place. Column type changes are compared on autogenerate so a
contact column narrowed back to INTEGER would show up in the diff.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from school_directory.config import settings
from school_directory.database import Base
from school_directory.models.school import School  # noqa: F401  (registers the table)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("dburl") or settings.database_url


def _configure(**kwargs) -> None:
    url = _database_url()
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_on_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
