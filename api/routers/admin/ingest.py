"""
Ingestion job endpoints: trigger jobs, read the audit log and pipeline status.
"""

import asyncio
import logging
from datetime import datetime

from apscheduler.triggers.cron import CronTrigger
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from api.scheduler import SCHEDULED_JOBS, is_job_enabled
from db import crud
from db.config import settings
from db.database import get_async_session, get_read_session
from db.enums import IngestJob, IngestStatus
from db.schemas import (
    AuditRecordResponse,
    JobQueuedResponse,
    JobStatus,
    MatchJobRequest,
    PipelineStatusResponse,
)
from ingestion.tasks import JOB_ACTORS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ingest", tags=["Admin - Ingestion"])


@router.get("/logs", response_model=list[AuditRecordResponse])
async def list_ingest_logs(
    job: IngestJob | None = None,
    status_filter: IngestStatus | None = Query(default=None, alias="status"),
    external_id: int | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    session: AsyncSession = Depends(get_read_session),
):
    """Most recent audit records first."""
    records = await crud.list_audit_records(
        session, job=job, status=status_filter, external_id=external_id, limit=limit
    )
    return [AuditRecordResponse.from_record(record) for record in records]


@router.post(
    "/run/{job}",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def run_ingest_job(job: IngestJob, request: MatchJobRequest | None = Body(default=None)):
    """Queue an ingestion job on the worker. The match job needs an identifier."""
    kwargs = {}
    if job == IngestJob.MATCH:
        if request is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Either external_id or catalog_entry_id is required",
            )
        kwargs = request.model_dump(exclude_none=True)

    actor = JOB_ACTORS[job.value]
    try:
        message = await asyncio.to_thread(actor.send, **kwargs)
    except Exception as e:
        logger.error(f"Failed to queue {job.value} job: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to queue job: {e}",
        )

    logger.info(f"Queued {job.value} job {message.message_id}")
    return JobQueuedResponse(
        job=job,
        message_id=message.message_id,
        message=f"Job '{job.value}' has been queued for execution",
    )


@router.post("/initialize")
async def initialize_settings(session: AsyncSession = Depends(get_async_session)):
    """Insert any missing default pipeline setting."""
    created = await crud.initialize_default_settings(session)
    return {"created": created}


def _next_run_time(crontab: str) -> datetime | None:
    trigger = CronTrigger.from_crontab(crontab)
    return trigger.get_next_fire_time(None, datetime.now(tz=trigger.timezone))


@router.get("/status", response_model=PipelineStatusResponse)
async def get_pipeline_status(
    request: Request, session: AsyncSession = Depends(get_read_session)
):
    """Schedule and last outcome of every job, plus the most recent audit records."""
    config = await crud.load_pipeline_config(session)
    latest = await crud.get_latest_audit_records(session)

    jobs = []
    for job in IngestJob:
        crontab, is_enabled, next_run_time = None, True, None
        if job in SCHEDULED_JOBS:
            _, cron_field, _ = SCHEDULED_JOBS[job]
            crontab = getattr(config, cron_field)
            is_enabled = is_job_enabled(job)
            if is_enabled:
                next_run_time = _next_run_time(crontab)
        last_run = latest.get(job)
        jobs.append(
            JobStatus(
                job=job,
                crontab=crontab,
                is_enabled=is_enabled,
                next_run_time=next_run_time,
                last_run=AuditRecordResponse.from_record(last_run) if last_run else None,
            )
        )

    recent = await crud.list_audit_records(session, limit=10)
    scheduler = getattr(request.app.state, "scheduler", None)
    return PipelineStatusResponse(
        jobs=jobs,
        recent=[AuditRecordResponse.from_record(record) for record in recent],
        scheduler_running=bool(scheduler and scheduler.running),
        global_scheduler_disabled=settings.disable_all_scheduler,
    )
