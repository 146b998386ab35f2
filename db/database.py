import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from db import models  # noqa: F401  registers the tables on SQLModel.metadata
from db.config import settings

logger = logging.getLogger(__name__)

ASYNC_ENGINE: AsyncEngine = create_async_engine(
    settings.postgres_uri,
    echo=False,
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# Admin listings read from the replica when one is configured.
ASYNC_READ_ENGINE: AsyncEngine = (
    create_async_engine(
        settings.postgres_read_uri,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    if settings.postgres_read_uri
    else ASYNC_ENGINE
)


@asynccontextmanager
async def get_background_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for a Dramatiq job.

    Each job runs in the worker's own event loop, so it gets a short-lived
    engine instead of sharing the API's pool.
    """
    engine = create_async_engine(
        settings.postgres_uri,
        echo=False,
        pool_size=2,
        max_overflow=2,
        pool_pre_ping=True,
    )
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session
    finally:
        await engine.dispose()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    session = AsyncSession(ASYNC_ENGINE, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


async def get_read_session() -> AsyncGenerator[AsyncSession, None]:
    session = AsyncSession(ASYNC_READ_ENGINE, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


async def init():
    """Verify connectivity and create any missing tables."""
    retries = 5
    for i in range(retries):
        try:
            async with ASYNC_ENGINE.begin() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("PostgreSQL connection initialized successfully.")
            break
        except Exception as e:
            if i < retries - 1:
                wait_time = 2**i
                logger.exception(
                    f"Error initializing PostgreSQL: {e}, retrying in {wait_time} seconds..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error("Failed to initialize PostgreSQL after several attempts.")
                raise


async def close():
    await ASYNC_ENGINE.dispose()
    if settings.postgres_read_uri:
        await ASYNC_READ_ENGINE.dispose()
    logger.info("PostgreSQL connections closed.")
