"""Alembic environment for the atsbridge schema.

The database URL comes from ``atsbridge.config`` unless overridden with
``alembic -x database_url=...``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from atsbridge.config import settings
from atsbridge.database import Base, get_engine_url_and_connect_args
from atsbridge.models import ApiKey, Assessment, Company, Invitation  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> tuple[str, dict]:
    override = context.get_x_argument(as_dictionary=True).get("database_url")
    return get_engine_url_and_connect_args(override or settings.database_url)


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_offline(url: str) -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_online(url: str, connect_args: dict) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool, connect_args=connect_args)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


_url, _connect_args = _database_url()
# configparser interpolation: a literal % must be doubled
config.set_main_option("sqlalchemy.url", _url.replace("%", "%%"))

if context.is_offline_mode():
    run_offline(_url)
else:
    asyncio.run(run_online(_url, _connect_args))
