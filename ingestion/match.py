"""
Match job: turn a catalog entry into stored stream candidates and choose the
active one.
"""

import logging
import traceback
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.enums import IngestJob, IngestStatus
from db.models import StreamCandidate
from db.models.base import utc_now
from db.schemas import PipelineConfig
from ingestion.exceptions import CatalogEntryNotFound, InvalidArgument
from ingestion.helpers import EntryRef, fetch_entry_streams
from ingestion.metrics import JobMetrics
from streaming_providers.adapter import ProviderAdapter
from utils.lock import entry_lock
from utils.quality import compare, is_better, meets_minimum, pick_best

logger = logging.getLogger(__name__)


def decide_activation(
    current: StreamCandidate | None, best: StreamCandidate, allow_lower: bool
) -> tuple[bool, str | None]:
    """Whether ``best`` should replace ``current`` as the active stream, and why."""
    if current is None:
        return True, "First available stream"
    if current.id == best.id or compare(best.quality, current.quality) == 0:
        return False, None
    if allow_lower:
        return True, f"Quality change: {current.quality.value} -> {best.quality.value}"
    if is_better(best.quality, current.quality):
        return True, f"Quality upgrade: {current.quality.value} -> {best.quality.value}"
    return False, None


async def _resolve_entry(
    session: AsyncSession, external_id: int | None, catalog_entry_id: int | None
):
    if external_id is not None:
        return await crud.get_entry_by_external_id(session, external_id)
    entry = await crud.get_entry_by_id(session, catalog_entry_id)
    if entry is None:
        raise CatalogEntryNotFound(catalog_entry_id)
    return entry


async def run_match(
    session: AsyncSession,
    config: PipelineConfig,
    adapter: ProviderAdapter,
    *,
    external_id: int | None = None,
    catalog_entry_id: int | None = None,
) -> dict[str, Any]:
    """
    Match one catalog entry against every provider.

    The entry is looked up by ``external_id`` when given, otherwise by
    ``catalog_entry_id``. An unknown external id is skipped; an unknown
    catalog entry id is an error. Returns the payload of the final audit
    record.
    """
    if external_id is None and catalog_entry_id is None:
        raise InvalidArgument("Either external_id or catalog_entry_id is required")

    metrics = JobMetrics(IngestJob.MATCH)
    metrics.start()
    audit_ids = {"catalog_entry_id": catalog_entry_id, "external_id": external_id}

    async def finish(status: IngestStatus, message: str, payload=None, metadata=None):
        metrics.stop()
        await crud.record_audit(
            session,
            IngestJob.MATCH,
            status,
            message,
            payload=payload,
            metadata=metadata,
            duration_ms=metrics.duration_ms,
            **audit_ids,
        )
        return payload or {}

    try:
        entry = await _resolve_entry(session, external_id, catalog_entry_id)
        if entry is None:
            logger.info(f"Catalog entry for external id {external_id} not imported yet, skipping")
            metrics.record_skip("entry not imported")
            return await finish(IngestStatus.SKIP, "Catalog entry not imported yet")

        ref = EntryRef.from_entry(entry)
        audit_ids = {"catalog_entry_id": ref.catalog_entry_id, "external_id": ref.external_id}

        drafts = await fetch_entry_streams(adapter, ref)
        metrics.increment("found", len(drafts))
        if not drafts:
            metrics.record_skip("no sources")
            return await finish(IngestStatus.SKIP, "No streaming sources found")

        publishable = [
            draft for draft in drafts if meets_minimum(draft.quality, config.min_quality_to_publish)
        ]
        metrics.increment("publishable", len(publishable))
        if not publishable:
            metrics.record_skip("below minimum quality")
            return await finish(
                IngestStatus.SKIP,
                f"No streams meet minimum quality: {config.min_quality_to_publish.value}",
                payload={"total_streams": len(drafts)},
            )

        now = utc_now()
        stored: dict[int, StreamCandidate] = {}
        for draft in publishable:
            try:
                async with session.begin_nested():
                    candidate = await crud.upsert_candidate(
                        session, ref.catalog_entry_id, draft, now=now
                    )
            except Exception as e:
                logger.exception(f"Failed to store stream {draft.url}: {e}")
                metrics.record_error("upsert_failed")
                continue
            stored[candidate.id] = candidate
            metrics.record_quality(candidate.quality)
        await session.commit()

        best = pick_best(list(stored.values()))
        activated, reason = False, None
        if best is None:
            logger.warning(f"No stream could be stored for catalog entry {ref.catalog_entry_id}")
        else:
            async with entry_lock(ref.catalog_entry_id):
                current = await crud.get_active_candidate(session, ref.catalog_entry_id)
                activated, reason = decide_activation(
                    current, best, config.allow_lower_quality_until_upgrade
                )
                if activated:
                    await crud.activate_candidate(session, best, now=now)
                    logger.info(
                        f"Activated {best.quality.value} stream from {best.provider.value} "
                        f"for catalog entry {ref.catalog_entry_id}: {reason}"
                    )

        payload = {
            "total_streams": len(drafts),
            "publishable_streams": len(publishable),
            "stored_streams": len(stored),
            "best_quality": best.quality.value if best else None,
            "activated": activated,
            "activation_reason": reason,
        }
        metadata = (
            {"provider": best.provider.value, "quality": best.quality.value, "url": best.url}
            if best
            else None
        )
        return await finish(
            IngestStatus.OK,
            f"Found {len(drafts)} streams, {len(publishable)} publishable",
            payload=payload,
            metadata=metadata,
        )
    except Exception as e:
        logger.exception(f"Match job failed for {audit_ids}: {e}")
        metrics.record_error(type(e).__name__)
        metrics.stop()
        await session.rollback()
        await crud.record_audit(
            session,
            IngestJob.MATCH,
            IngestStatus.ERROR,
            str(e) or type(e).__name__,
            error=traceback.format_exc(),
            duration_ms=metrics.duration_ms,
            **audit_ids,
        )
        raise
    finally:
        metrics.log_summary(logger)
