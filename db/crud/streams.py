"""
Stream candidate CRUD operations.

Candidates are unique per (catalog entry, url): rediscovering a url updates
the existing row instead of inserting a duplicate.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete as sa_delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from db.enums import DeliveryType, VideoCodec
from db.models import CatalogEntry, StreamCandidate
from db.models.base import utc_now
from db.schemas import StreamDraft
from utils.quality import Quality, normalize, qualities_below

logger = logging.getLogger(__name__)


def _parse_codec(codec: str | None) -> VideoCodec | None:
    if not codec:
        return None
    try:
        return VideoCodec(codec.lower())
    except ValueError:
        logger.debug("Dropping unknown codec %r", codec)
        return None


# =============================================================================
# READS
# =============================================================================


async def get_candidate_by_id(session: AsyncSession, candidate_id: int) -> StreamCandidate | None:
    return await session.get(StreamCandidate, candidate_id)


async def get_candidate_by_url(
    session: AsyncSession, catalog_entry_id: int, url: str
) -> StreamCandidate | None:
    result = await session.exec(
        select(StreamCandidate).where(
            StreamCandidate.catalog_entry_id == catalog_entry_id,
            StreamCandidate.url == url,
        )
    )
    return result.first()


async def get_active_candidate(session: AsyncSession, catalog_entry_id: int) -> StreamCandidate | None:
    """The candidate currently served for an entry, if any."""
    result = await session.exec(
        select(StreamCandidate)
        .where(
            StreamCandidate.catalog_entry_id == catalog_entry_id,
            StreamCandidate.is_active.is_(True),
        )
        .order_by(StreamCandidate.last_checked_at.desc())
    )
    return result.first()


async def get_candidates_for_entry(
    session: AsyncSession, catalog_entry_id: int
) -> Sequence[StreamCandidate]:
    result = await session.exec(
        select(StreamCandidate)
        .where(StreamCandidate.catalog_entry_id == catalog_entry_id)
        .order_by(StreamCandidate.is_active.desc(), StreamCandidate.added_at.desc())
    )
    return result.all()


async def get_active_candidates_below(
    session: AsyncSession, target_quality: Quality
) -> Sequence[tuple[StreamCandidate, CatalogEntry | None]]:
    """Active candidates ranked strictly below ``target_quality``, with their entry."""
    lower = qualities_below(target_quality)
    if not lower:
        return []
    result = await session.exec(
        select(StreamCandidate, CatalogEntry)
        .join(CatalogEntry, CatalogEntry.id == StreamCandidate.catalog_entry_id, isouter=True)
        .where(StreamCandidate.is_active.is_(True), StreamCandidate.quality.in_(lower))
        .order_by(StreamCandidate.id)
    )
    return result.all()


async def get_active_candidates_unverified_since(
    session: AsyncSession, cutoff: datetime
) -> Sequence[tuple[StreamCandidate, CatalogEntry | None]]:
    """Active candidates whose last verification is older than ``cutoff``."""
    result = await session.exec(
        select(StreamCandidate, CatalogEntry)
        .join(CatalogEntry, CatalogEntry.id == StreamCandidate.catalog_entry_id, isouter=True)
        .where(
            StreamCandidate.is_active.is_(True),
            StreamCandidate.last_verified_at < cutoff,
        )
        .order_by(StreamCandidate.last_verified_at)
    )
    return result.all()


# =============================================================================
# WRITES
# =============================================================================


async def upsert_candidate(
    session: AsyncSession,
    catalog_entry_id: int,
    draft: StreamDraft,
    *,
    now: datetime | None = None,
) -> StreamCandidate:
    """
    Insert a candidate for ``draft.url`` or refresh the mutable fields of the
    existing one. Flushes but does not commit.
    """
    now = now or utc_now()
    candidate = await get_candidate_by_url(session, catalog_entry_id, draft.url)
    if candidate is None:
        candidate = StreamCandidate(
            catalog_entry_id=catalog_entry_id,
            provider=draft.provider,
            provider_ref=draft.provider_ref,
            url=draft.url,
            delivery=draft.delivery or DeliveryType.LICENSED_EMBED,
            quality=normalize(draft.quality),
            codec=_parse_codec(draft.codec),
            score=draft.score or 0,
            audio_languages=draft.audio_languages,
            subtitles=draft.subtitles,
            added_at=now,
            last_checked_at=now,
            last_verified_at=now,
        )
    else:
        candidate.provider = draft.provider or candidate.provider
        candidate.provider_ref = draft.provider_ref or candidate.provider_ref
        candidate.delivery = draft.delivery or candidate.delivery
        candidate.quality = normalize(draft.quality)
        candidate.codec = _parse_codec(draft.codec) or candidate.codec
        candidate.score = draft.score or 0
        candidate.last_checked_at = now

    session.add(candidate)
    await session.flush()
    return candidate


async def create_candidate(
    session: AsyncSession,
    catalog_entry_id: int,
    draft: StreamDraft,
    *,
    now: datetime | None = None,
) -> StreamCandidate:
    """
    Store ``draft`` as a new, inactive candidate row.

    If the entry already has a row for the same url, that row is refreshed and
    returned instead, so the (entry, url) pair stays unique.
    """
    now = now or utc_now()
    existing = await get_candidate_by_url(session, catalog_entry_id, draft.url)
    if existing is not None:
        existing.is_broken = False
        existing.last_verified_at = now

    candidate = await upsert_candidate(session, catalog_entry_id, draft, now=now)
    await session.commit()
    return candidate


async def activate_candidate(
    session: AsyncSession,
    candidate: StreamCandidate,
    *,
    now: datetime | None = None,
) -> list[StreamCandidate]:
    """
    Make ``candidate`` the active stream of its entry.

    Every other active candidate of the entry is deactivated first and points
    at ``candidate`` through ``superseded_by``; both writes are committed
    together. Returns the deactivated candidates.
    """
    now = now or utc_now()
    result = await session.exec(
        select(StreamCandidate).where(
            StreamCandidate.catalog_entry_id == candidate.catalog_entry_id,
            StreamCandidate.is_active.is_(True),
            StreamCandidate.id != candidate.id,
        )
    )
    deactivated = list(result.all())
    for previous in deactivated:
        previous.is_active = False
        previous.superseded_by = candidate.id
        session.add(previous)
    await session.flush()

    candidate.is_active = True
    candidate.last_checked_at = now
    session.add(candidate)
    await session.commit()
    return deactivated


async def mark_candidate_verified(
    session: AsyncSession, candidate: StreamCandidate, *, now: datetime | None = None
) -> StreamCandidate:
    candidate.last_verified_at = now or utc_now()
    candidate.is_broken = False
    session.add(candidate)
    await session.commit()
    return candidate


async def mark_candidate_broken(
    session: AsyncSession, candidate: StreamCandidate, *, now: datetime | None = None
) -> StreamCandidate:
    candidate.is_active = False
    candidate.is_broken = True
    candidate.last_verified_at = now or utc_now()
    session.add(candidate)
    await session.commit()
    return candidate


async def set_superseded_by(
    session: AsyncSession, candidate: StreamCandidate, replacement: StreamCandidate
) -> None:
    candidate.superseded_by = replacement.id
    session.add(candidate)
    await session.commit()


async def delete_broken_candidates(session: AsyncSession, verified_before: datetime) -> int:
    """Delete broken candidates last verified before ``verified_before``."""
    result = await session.exec(
        sa_delete(StreamCandidate).where(
            StreamCandidate.is_broken.is_(True),
            StreamCandidate.last_verified_at < verified_before,
        )
    )
    await session.commit()
    return result.rowcount
