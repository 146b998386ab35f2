"""
Reverify job: re-test active streams that have not been checked within the grace
period, retire broken ones and prune old broken rows.
"""

import logging
import traceback
from datetime import datetime, timedelta
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.enums import IngestJob, IngestStatus
from db.models import StreamCandidate
from db.models.base import utc_now
from db.schemas import PipelineConfig
from ingestion.helpers import EntryRef, fetch_entry_streams
from ingestion.metrics import JobMetrics
from streaming_providers.adapter import ProviderAdapter
from utils.lock import entry_lock

logger = logging.getLogger(__name__)


async def _replace_broken(
    session: AsyncSession,
    adapter: ProviderAdapter,
    broken: StreamCandidate,
    ref: EntryRef,
    now: datetime,
) -> StreamCandidate | None:
    # First source with a different url wins; quality is not ranked here.
    drafts = await fetch_entry_streams(adapter, ref)
    replacement_draft = next((draft for draft in drafts if draft.url != broken.url), None)
    if replacement_draft is None:
        logger.warning(f"No alternative stream found for catalog entry {ref.catalog_entry_id}")
        return None

    async with entry_lock(ref.catalog_entry_id):
        replacement = await crud.create_candidate(
            session, ref.catalog_entry_id, replacement_draft, now=now
        )
        await crud.activate_candidate(session, replacement, now=now)
        await crud.set_superseded_by(session, broken, replacement)

    logger.info(
        f"Replaced broken stream for catalog entry {ref.catalog_entry_id} "
        f"with {replacement.provider.value} {replacement.quality.value}"
    )
    return replacement


async def _verify_candidate(
    session: AsyncSession,
    adapter: ProviderAdapter,
    candidate_id: int,
    ref: EntryRef,
    now: datetime,
    metrics: JobMetrics,
) -> bool:
    """Returns True when the stream turned out broken."""
    candidate = await crud.get_candidate_by_id(session, candidate_id)
    if candidate is None or not candidate.is_active:
        metrics.record_skip("no longer active")
        return False

    if await adapter.verify_stream(candidate.url):
        await crud.mark_candidate_verified(session, candidate, now=now)
        metrics.increment("working")
        return False

    await crud.mark_candidate_broken(session, candidate, now=now)
    logger.warning(f"Stream {candidate.id} for catalog entry {ref.catalog_entry_id} is broken")
    await crud.record_audit(
        session,
        IngestJob.REVERIFY,
        IngestStatus.ERROR,
        f"Stream marked as broken: {candidate.url}",
        catalog_entry_id=ref.catalog_entry_id,
        external_id=ref.external_id,
        payload={
            "stream_id": candidate.id,
            "url": candidate.url,
            "provider": candidate.provider.value,
            "quality": candidate.quality.value,
        },
        metadata={
            "provider": candidate.provider.value,
            "quality": candidate.quality.value,
            "url": candidate.url,
        },
    )

    try:
        if await _replace_broken(session, adapter, candidate, ref, now):
            metrics.increment("replaced")
    except Exception as e:
        logger.exception(
            f"Failed to find an alternative for catalog entry {ref.catalog_entry_id}: {e}"
        )
        metrics.record_error("replacement_failed")
        await session.rollback()
    return True


async def run_reverify(
    session: AsyncSession,
    config: PipelineConfig,
    adapter: ProviderAdapter,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Verify stale active streams, then delete broken rows last verified more
    than twice the grace period ago. Returns the payload of the final audit
    record.
    """
    metrics = JobMetrics(IngestJob.REVERIFY)
    metrics.start()
    now = now or utc_now()
    grace = timedelta(hours=config.grace_period_hours)
    verified = broken = 0
    try:
        rows = await crud.get_active_candidates_unverified_since(session, now - grace)
        targets = [
            (candidate.id, EntryRef.from_entry(entry) if entry is not None else None)
            for candidate, entry in rows
        ]
        logger.info(f"Verifying {len(targets)} streams not checked since {now - grace}")

        for candidate_id, ref in targets:
            verified += 1
            if ref is None:
                logger.warning(f"Stream candidate {candidate_id} has no catalog entry, skipping")
                metrics.record_skip("missing catalog entry")
                continue
            try:
                if await _verify_candidate(session, adapter, candidate_id, ref, now, metrics):
                    broken += 1
            except Exception as e:
                logger.exception(f"Failed to verify stream candidate {candidate_id}: {e}")
                metrics.record_error("verify_failed")
                await session.rollback()

        cleaned = await crud.delete_broken_candidates(session, now - 2 * grace)
        metrics.increment("verified", verified)
        metrics.increment("broken", broken)
        metrics.increment("cleaned", cleaned)
        metrics.stop()

        payload = {
            "verified": verified,
            "broken": broken,
            "replaced": metrics.counts["replaced"],
            "cleaned": cleaned,
            "grace_period_hours": config.grace_period_hours,
        }
        await crud.record_audit(
            session,
            IngestJob.REVERIFY,
            IngestStatus.OK,
            f"Verified {verified} streams, {broken} broken, {cleaned} cleaned up",
            payload=payload,
            duration_ms=metrics.duration_ms,
        )
        return payload
    except Exception as e:
        logger.exception(f"Reverify job failed: {e}")
        metrics.stop()
        await session.rollback()
        await crud.record_audit(
            session,
            IngestJob.REVERIFY,
            IngestStatus.ERROR,
            str(e) or type(e).__name__,
            payload={"verified": verified, "broken": broken},
            error=traceback.format_exc(),
            duration_ms=metrics.duration_ms,
        )
        raise
    finally:
        metrics.log_summary(logger)
