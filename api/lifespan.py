"""Application lifecycle management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from api.scheduler import setup_scheduler
from db import crud, database, redis_database
from db.config import settings
from db.schemas import PipelineConfig
from utils.lock import (
    acquire_scheduler_lock,
    maintain_heartbeat,
    release_scheduler_lock,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles:
    - Database initialization and default pipeline settings
    - Scheduler setup with distributed locking
    - Graceful shutdown
    """
    await database.init()
    try:
        async with database.get_background_session() as session:
            await crud.initialize_default_settings(session)
            pipeline_config = await crud.load_pipeline_config(session)
    except SQLAlchemyError as e:
        logging.error(f"Could not load pipeline settings, using defaults: {e}")
        pipeline_config = PipelineConfig()

    scheduler = None
    scheduler_lock = None
    heartbeat_task = None

    if not settings.disable_all_scheduler:
        acquired, scheduler_lock = await acquire_scheduler_lock()
        if acquired:
            try:
                scheduler = AsyncIOScheduler()
                setup_scheduler(scheduler, pipeline_config)
                scheduler.start()
                app.state.scheduler = scheduler
                heartbeat_task = asyncio.create_task(maintain_heartbeat())
            except Exception as e:
                await release_scheduler_lock(scheduler_lock)
                raise e

    yield

    if heartbeat_task:
        heartbeat_task.cancel()
        try:
            await heartbeat_task
        except asyncio.CancelledError:
            logging.info("Heartbeat task cancelled")

    if scheduler:
        try:
            scheduler.shutdown(wait=False)
        except Exception as e:
            logging.exception("Error shutting down scheduler, %s", e)
        finally:
            await release_scheduler_lock(scheduler_lock)

    await database.close()
    await redis_database.close()
