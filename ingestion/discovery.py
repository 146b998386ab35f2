"""Discovery job: find catalog ids that are new to us and queue them for matching."""

import logging
import traceback
from typing import Any, Awaitable, Callable

from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.enums import IngestJob, IngestStatus
from ingestion.metrics import JobMetrics
from scrapers import tmdb_data

logger = logging.getLogger(__name__)

DiscoverFunc = Callable[[], Awaitable[dict[str, list[int]]]]
EnqueueFunc = Callable[[int], Any]


async def run_discovery(
    session: AsyncSession,
    *,
    enqueue_match: EnqueueFunc,
    discover: DiscoverFunc | None = None,
) -> dict[str, Any]:
    """
    Collect ids from every discovery facet and enqueue a match job for each id
    that is not in the catalog yet.

    A failure to enqueue one id is logged and does not stop the others.
    Returns the payload of the final audit record.
    """
    metrics = JobMetrics(IngestJob.DISCOVERY)
    metrics.start()
    try:
        discover = discover or tmdb_data.discover_movie_ids
        facet_ids = await discover()

        discovered: set[int] = set()
        for facet, ids in facet_ids.items():
            logger.info(f"Facet {facet} listed {len(ids)} ids")
            metrics.increment(f"facet:{facet}", len(ids))
            discovered.update(ids)

        existing = await crud.get_existing_external_ids(session, discovered)
        new_ids = sorted(discovered - existing)

        queued = 0
        for external_id in new_ids:
            try:
                enqueue_match(external_id)
                queued += 1
            except Exception as e:
                logger.exception(f"Failed to enqueue match for {external_id}: {e}")
                metrics.record_error("enqueue_failed")

        metrics.increment("discovered", len(discovered))
        metrics.increment("queued", queued)
        metrics.stop()
        payload = {
            "total_discovered": len(discovered),
            "new_ids": len(new_ids),
            "existing_ids": len(existing),
            "queued": queued,
            "facets": {facet: len(ids) for facet, ids in facet_ids.items()},
        }
        await crud.record_audit(
            session,
            IngestJob.DISCOVERY,
            IngestStatus.OK,
            f"Discovered {len(discovered)} ids, {len(new_ids)} new",
            payload=payload,
            duration_ms=metrics.duration_ms,
        )
        return payload
    except Exception as e:
        logger.exception(f"Discovery job failed: {e}")
        metrics.stop()
        await session.rollback()
        await crud.record_audit(
            session,
            IngestJob.DISCOVERY,
            IngestStatus.ERROR,
            str(e) or type(e).__name__,
            error=traceback.format_exc(),
            duration_ms=metrics.duration_ms,
        )
        raise
    finally:
        metrics.log_summary(logger)
