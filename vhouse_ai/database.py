"""Async access to the VHouse customer, order and catalog tables.

The conversation service only reads from these tables. Sessions handed to
the repositories are rolled back when the request ends, so nothing a
request touches is ever flushed back to the store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from vhouse_ai.config.settings import settings
from vhouse_ai.models import Base  # package import registers every table on Base

logger = logging.getLogger(__name__)


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    # Serverless Postgres pauses between bursts; a pool would hold it awake.
    if settings.database.serverless or settings.debug:
        options["poolclass"] = NullPool
    return options


engine: AsyncEngine = create_async_engine(settings.database.url, **_engine_options())

SessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def read_session() -> AsyncIterator[AsyncSession]:
    """Yield a session whose work is discarded on exit."""

    async with SessionFactory() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency wrapping :func:`read_session`."""

    async with read_session() as session:
        yield session


async def init_models() -> None:
    """Create the customer, product and order tables when they are missing."""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tablas verificadas: %s", ", ".join(sorted(Base.metadata.tables)))


async def dispose_engine() -> None:
    await engine.dispose()
