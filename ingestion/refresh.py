"""Refresh job: look for better sources for active streams below the target quality."""

import logging
import traceback
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from db import crud
from db.enums import IngestJob, IngestStatus
from db.models.base import utc_now
from db.schemas import PipelineConfig
from ingestion.helpers import EntryRef, fetch_entry_streams
from ingestion.metrics import JobMetrics
from streaming_providers.adapter import ProviderAdapter
from utils.lock import entry_lock
from utils.quality import is_better, pick_best

logger = logging.getLogger(__name__)


async def _upgrade_candidate(
    session: AsyncSession,
    adapter: ProviderAdapter,
    candidate_id: int,
    ref: EntryRef,
    metrics: JobMetrics,
) -> bool:
    candidate = await crud.get_candidate_by_id(session, candidate_id)
    if candidate is None or not candidate.is_active:
        metrics.record_skip("no longer active")
        return False
    old_quality = candidate.quality

    drafts = await fetch_entry_streams(adapter, ref)
    best = pick_best([draft for draft in drafts if is_better(draft.quality, old_quality)])
    if best is None:
        metrics.record_skip("no better source")
        return False

    now = utc_now()
    async with entry_lock(ref.catalog_entry_id):
        replacement = await crud.create_candidate(session, ref.catalog_entry_id, best, now=now)
        await crud.activate_candidate(session, replacement, now=now)

    logger.info(
        f"Upgraded catalog entry {ref.catalog_entry_id} from {old_quality.value} "
        f"to {replacement.quality.value} via {replacement.provider.value}"
    )
    metrics.record_quality(replacement.quality)
    await crud.record_audit(
        session,
        IngestJob.REFRESH,
        IngestStatus.UPGRADED,
        f"Quality upgraded: {old_quality.value} -> {replacement.quality.value}",
        catalog_entry_id=ref.catalog_entry_id,
        external_id=ref.external_id,
        payload={
            "old_quality": old_quality.value,
            "new_quality": replacement.quality.value,
            "provider": replacement.provider.value,
        },
        metadata={
            "provider": replacement.provider.value,
            "old_quality": old_quality.value,
            "new_quality": replacement.quality.value,
            "url": replacement.url,
        },
    )
    return True


async def run_refresh(
    session: AsyncSession, config: PipelineConfig, adapter: ProviderAdapter
) -> dict[str, Any]:
    """
    Re-query providers for every active stream ranked strictly below the
    target quality and switch to a strictly better source when one exists.

    A failure on one entry is logged and the scan moves on. Returns the
    payload of the final audit record.
    """
    metrics = JobMetrics(IngestJob.REFRESH)
    metrics.start()
    checked = upgraded = 0
    try:
        rows = await crud.get_active_candidates_below(session, config.target_quality)
        targets = [
            (candidate.id, EntryRef.from_entry(entry) if entry is not None else None)
            for candidate, entry in rows
        ]
        logger.info(
            f"Refreshing {len(targets)} active streams below {config.target_quality.value}"
        )

        for candidate_id, ref in targets:
            checked += 1
            if ref is None:
                logger.warning(f"Stream candidate {candidate_id} has no catalog entry, skipping")
                metrics.record_skip("missing catalog entry")
                continue
            try:
                if await _upgrade_candidate(session, adapter, candidate_id, ref, metrics):
                    upgraded += 1
            except Exception as e:
                logger.exception(
                    f"Failed to refresh catalog entry {ref.catalog_entry_id}: {e}"
                )
                metrics.record_error("refresh_failed")
                await session.rollback()

        metrics.increment("checked", checked)
        metrics.increment("upgraded", upgraded)
        metrics.stop()
        payload = {
            "checked": checked,
            "upgraded": upgraded,
            "target_quality": config.target_quality.value,
        }
        await crud.record_audit(
            session,
            IngestJob.REFRESH,
            IngestStatus.OK,
            f"Checked {checked} streams, upgraded {upgraded}",
            payload=payload,
            duration_ms=metrics.duration_ms,
        )
        return payload
    except Exception as e:
        logger.exception(f"Refresh job failed: {e}")
        metrics.stop()
        await session.rollback()
        await crud.record_audit(
            session,
            IngestJob.REFRESH,
            IngestStatus.ERROR,
            str(e) or type(e).__name__,
            payload={"checked": checked, "upgraded": upgraded},
            error=traceback.format_exc(),
            duration_ms=metrics.duration_ms,
        )
        raise
    finally:
        metrics.log_summary(logger)
