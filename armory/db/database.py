"""
Object store engine and session management.

The store is a single async SQLAlchemy database. SQLite (aiosqlite) is the
default; PostgreSQL works through the `postgres` extra.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from armory.config import settings
from armory.models.db import Base


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """
    Create the store engine for `url`.

    SQLite only enforces inventory and capability foreign keys when the
    pragma is switched on for every connection.
    """
    store = create_async_engine(url, echo=echo, pool_pre_ping=True)
    if store.dialect.name == "sqlite":
        event.listen(store.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return store


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a store session.

    Marketplace writes go through armory.db.workspace.transaction(), which
    commits or rolls back on its own; the commit here only covers plain
    reads.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create every table of the object store. Called once at startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
