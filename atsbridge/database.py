"""Database connection and session management."""

import ssl
from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


def _make_ssl_context_for_supabase():
    """SSL context for Supabase - disables cert verification to avoid macOS chain issues."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def get_engine_url_and_connect_args(database_url: str) -> tuple[str, dict]:
    """Strip sslmode from URL (asyncpg doesn't accept it) and add SSL via connect_args for Supabase."""
    url = database_url
    connect_args = {}
    if "sslmode=" in url or "ssl=" in url:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        query.pop("sslmode", None)
        query.pop("ssl", None)
        new_query = urlencode(query, doseq=True)
        url = urlunparse(parsed._replace(query=new_query))
        if "supabase" in database_url:
            connect_args["ssl"] = _make_ssl_context_for_supabase()
    return url, connect_args


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on the sqlite driver."""

    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine. Owned by the process entry point (see main.create_app)."""
    url, connect_args = get_engine_url_and_connect_args(database_url)
    engine = create_async_engine(url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database sessions."""
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
