# Desc: dramatiq Redis broker for the ingestion workers.
import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AsyncIO,
    AgeLimit,
    TimeLimit,
    ShutdownNotifications,
    Callbacks,
    Pipelines,
)

from api.middleware import MaxTasksPerChild, Retries
from db.config import settings

# Dead messages live as long as the audit records that describe them.
redis_broker = RedisBroker(
    url=settings.redis_url,
    namespace=settings.broker_namespace,
    dead_message_ttl=settings.audit_retention_days * 24 * 60 * 60 * 1000,
    middleware=[
        AgeLimit(max_age=settings.job_max_age),
        TimeLimit(),
        ShutdownNotifications(),
        Callbacks(),
        Pipelines(),
        Retries(),
        AsyncIO(),
        MaxTasksPerChild(settings.worker_max_tasks_per_child),
    ],
)
dramatiq.set_broker(redis_broker)
