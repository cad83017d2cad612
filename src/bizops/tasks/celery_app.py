"""Celery application instance for periodic background jobs.

Celery runs as a SEPARATE process from FastAPI. Workers are sync --
never use async code inside Celery tasks. The broker and result backend
both use the same Redis instance as the main application.

Worker startup: celery -A bizops.tasks.celery_app:celery_app worker --loglevel=info
Beat startup: celery -A bizops.tasks.celery_app:celery_app beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from bizops.config import get_settings

settings = get_settings()

celery_app = Celery(
    "bizops",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["bizops.tasks.backups", "bizops.tasks.leads"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "nightly-backup": {
            "task": "bizops.tasks.backups.scheduled_backup",
            "schedule": crontab(hour=settings.backup_hour_utc, minute=0),
        },
        "auto-assign-leads": {
            "task": "bizops.tasks.leads.auto_assign_leads",
            "schedule": float(settings.lead_assign_interval_seconds),
        },
    },
)
