"""Async SQLAlchemy engine backing PgStore.

``engine`` and ``async_session_factory`` are None when DATABASE_URL is
unset; ``unit_of_work.build_store`` then falls back to InMemoryStore.
Every unit of work opens its own session from the factory.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from academy.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the tables in academy.db.tables."""


def _create_engine(url: str) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {
                "application_name": "academy-enrollment",
                # enrollment rows are locked FOR UPDATE; never queue behind one forever
                "lock_timeout": "5s",
            }
        },
    )


engine: AsyncEngine | None = (
    _create_engine(SETTINGS.database_url) if SETTINGS.database_url else None
)
async_session_factory: async_sessionmaker[AsyncSession] | None = (
    async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    if engine is not None
    else None
)


async def ping() -> bool:
    """True when the database answers ``SELECT 1``, or when there is none."""
    if engine is None:
        return True
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        return False
    return True


@asynccontextmanager
async def lifespan_db() -> AsyncIterator[None]:
    """Dispose the connection pool on shutdown."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using the in-memory store")
        yield
        return

    logger.info("PostgreSQL store at %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
