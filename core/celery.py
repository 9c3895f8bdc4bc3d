from celery import Celery
from core.config import settings

# Redis is both broker and result backend
celery_app = Celery(
    "storefront",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["tasks.domain_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=24 * 60 * 60,
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # A sweep must finish before its lease expires and another run may start
    task_soft_time_limit=max(settings.SWEEP_LEASE_SECONDS - 60, 30),
    task_time_limit=settings.SWEEP_LEASE_SECONDS,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_always_eager=settings.TESTING,
    task_eager_propagates=settings.TESTING,
    beat_schedule={
        "refresh-custom-domains": {
            "task": "tasks.domain_tasks.refresh_domains_task",
            "schedule": settings.DOMAIN_REFRESH_INTERVAL_MINUTES * 60.0,
        },
    },
)
