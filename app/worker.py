"""Celery worker configuration.

This module sets up Celery for background task processing:
- Booking confirmation emails
- Outbound booking webhooks
- Blane expiration sweep
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery(
    "dabablane_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=120,
    task_soft_time_limit=90,

    # Worker settings
    worker_prefetch_multiplier=1,

    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,

    beat_schedule={
        # Mark past-expiration blanes as expired at midnight
        "check-blane-expiration": {
            "task": "app.tasks.check_blane_expiration",
            "schedule": crontab(hour=0, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
