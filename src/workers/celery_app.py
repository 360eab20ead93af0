from celery import Celery
from celery.schedules import crontab

from config import settings

celery_app = Celery(
    "fitlens",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=6 * 3600,  # a full sweep is slow by design
    task_soft_time_limit=6 * 3600 - 300,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
)

celery_app.conf.beat_schedule = {
    "refresh-stale-reviews-weekly": {
        "task": "workers.tasks.refresh_stale_reviews",
        "schedule": crontab(minute=0, hour=0, day_of_week=0),
    },
}
