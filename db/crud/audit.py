"""Ingestion audit records."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from db.config import settings
from db.enums import IngestJob, IngestStatus
from db.models import IngestAuditRecord
from db.models.base import utc_now

logger = logging.getLogger(__name__)


async def record_audit(
    session: AsyncSession,
    job: IngestJob,
    status: IngestStatus,
    message: str,
    *,
    catalog_entry_id: int | None = None,
    external_id: int | None = None,
    payload: dict[str, Any] | None = None,
    error: str | None = None,
    duration_ms: int = 0,
    metadata: dict[str, Any] | None = None,
) -> IngestAuditRecord:
    """Append an audit record and commit it right away."""
    created_at = utc_now()
    record = IngestAuditRecord(
        job=job,
        status=status,
        message=message,
        catalog_entry_id=catalog_entry_id,
        external_id=external_id,
        payload=payload,
        error=error,
        duration_ms=duration_ms,
        meta=metadata,
        created_at=created_at,
        expires_at=created_at + timedelta(days=settings.audit_retention_days),
    )
    session.add(record)
    await session.commit()
    return record


async def list_audit_records(
    session: AsyncSession,
    *,
    job: IngestJob | None = None,
    status: IngestStatus | None = None,
    external_id: int | None = None,
    limit: int = 50,
) -> list[IngestAuditRecord]:
    """Newest records first, optionally filtered."""
    query = select(IngestAuditRecord)
    if job:
        query = query.where(IngestAuditRecord.job == job)
    if status:
        query = query.where(IngestAuditRecord.status == status)
    if external_id is not None:
        query = query.where(IngestAuditRecord.external_id == external_id)

    query = query.order_by(IngestAuditRecord.created_at.desc(), IngestAuditRecord.id.desc()).limit(limit)
    result = await session.exec(query)
    return list(result.all())


async def delete_expired_audit_records(session: AsyncSession, now: datetime | None = None) -> int:
    now = now or utc_now()
    result = await session.exec(
        sa_delete(IngestAuditRecord).where(IngestAuditRecord.expires_at < now)
    )
    await session.commit()
    logger.info("Deleted %s expired audit records", result.rowcount)
    return result.rowcount


async def get_latest_audit_records(session: AsyncSession) -> dict[IngestJob, IngestAuditRecord]:
    """The newest record of each job that has run at least once."""
    latest = {}
    for job in IngestJob:
        records = await list_audit_records(session, job=job, limit=1)
        if records:
            latest[job] = records[0]
    return latest
