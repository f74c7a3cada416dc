from celery import Celery

from timekeeper.core.config import settings

celery_app = Celery(
    "timekeeper",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["timekeeper.tasks.async_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    beat_schedule={
        "reconcile-schedule-statuses": {
            "task": "reconcile_schedule_statuses",
            "schedule": settings.RECONCILE_INTERVAL_MINUTES * 60.0,
        },
    },
)
