import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from db.config import settings
from db.enums import IngestJob
from db.schemas import PipelineConfig
from ingestion.tasks import cleanup_expired_audit_records, discovery, refresh, reverify

# Recurring job -> (actor, PipelineConfig cron field, disable toggle in settings)
SCHEDULED_JOBS = {
    IngestJob.DISCOVERY: (discovery, "discover_cron", "disable_discovery_scheduler"),
    IngestJob.REFRESH: (refresh, "refresh_cron", "disable_refresh_scheduler"),
    IngestJob.REVERIFY: (reverify, "reverify_cron", "disable_reverify_scheduler"),
}


def is_job_enabled(job: IngestJob) -> bool:
    if settings.disable_all_scheduler:
        return False
    _, _, disable_setting = SCHEDULED_JOBS[job]
    return not getattr(settings, disable_setting, False)


def setup_scheduler(scheduler: AsyncIOScheduler, config: PipelineConfig):
    """
    Set up the scheduler with the recurring ingestion jobs.

    Cron expressions come from the pipeline settings read at startup; a
    changed schedule applies after a restart.
    """
    if settings.disable_all_scheduler:
        logging.info("All schedulers are disabled")
        return

    for job, (actor, cron_field, _) in SCHEDULED_JOBS.items():
        if not is_job_enabled(job):
            logging.info(f"{job.value} scheduler is disabled")
            continue
        scheduler.add_job(
            actor.send,
            CronTrigger.from_crontab(getattr(config, cron_field)),
            name=f"ingest_{job.value}",
        )

    if not settings.disable_audit_cleanup_scheduler:
        scheduler.add_job(
            cleanup_expired_audit_records.send,
            CronTrigger.from_crontab(settings.audit_cleanup_crontab),
            name="cleanup_expired_audit_records",
        )
