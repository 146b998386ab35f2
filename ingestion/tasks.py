"""
Dramatiq actors for the ingestion jobs.

Each actor opens its own database session, snapshots the pipeline settings
and builds a fresh provider adapter, so a settings change takes effect on
the next run.
"""

import logging

import dramatiq

import api  # noqa: F401  sets the broker the actors bind to
from db import crud
from db.config import settings
from db.database import get_background_session
from ingestion.discovery import run_discovery
from ingestion.exceptions import ConfigurationError, InvalidArgument
from ingestion.match import run_match
from ingestion.refresh import run_refresh
from ingestion.reverify import run_reverify
from streaming_providers.adapter import ProviderAdapter

logger = logging.getLogger(__name__)

NON_RETRYABLE = (InvalidArgument, ConfigurationError)


@dramatiq.actor(
    actor_name="ingest_match",
    queue_name=settings.ingest_queue_name,
    time_limit=settings.match_time_limit,
    max_retries=3,
    min_backoff=60000,
    throws=NON_RETRYABLE,
)
async def match(external_id: int = None, catalog_entry_id: int = None, **kwargs):
    async with get_background_session() as session:
        config = await crud.load_pipeline_config(session)
        async with ProviderAdapter.from_config(config) as adapter:
            await run_match(
                session,
                config,
                adapter,
                external_id=external_id,
                catalog_entry_id=catalog_entry_id,
            )


def enqueue_match(external_id: int):
    match.send(external_id=external_id)


@dramatiq.actor(
    actor_name="ingest_discovery",
    queue_name=settings.ingest_queue_name,
    time_limit=settings.discovery_time_limit,
    max_retries=0,
    throws=NON_RETRYABLE,
)
async def discovery(**kwargs):
    async with get_background_session() as session:
        await run_discovery(session, enqueue_match=enqueue_match)


@dramatiq.actor(
    actor_name="ingest_refresh",
    queue_name=settings.ingest_queue_name,
    time_limit=settings.refresh_time_limit,
    max_retries=0,
    throws=NON_RETRYABLE,
)
async def refresh(**kwargs):
    async with get_background_session() as session:
        config = await crud.load_pipeline_config(session)
        async with ProviderAdapter.from_config(config) as adapter:
            await run_refresh(session, config, adapter)


@dramatiq.actor(
    actor_name="ingest_reverify",
    queue_name=settings.ingest_queue_name,
    time_limit=settings.reverify_time_limit,
    max_retries=0,
    throws=NON_RETRYABLE,
)
async def reverify(**kwargs):
    async with get_background_session() as session:
        config = await crud.load_pipeline_config(session)
        async with ProviderAdapter.from_config(config) as adapter:
            await run_reverify(session, config, adapter)


@dramatiq.actor(actor_name="cleanup_expired_audit_records", max_retries=0)
async def cleanup_expired_audit_records(**kwargs):
    async with get_background_session() as session:
        deleted = await crud.delete_expired_audit_records(session)
    logger.info(f"Audit cleanup removed {deleted} records")


JOB_ACTORS = {
    "discovery": discovery,
    "match": match,
    "refresh": refresh,
    "reverify": reverify,
}
