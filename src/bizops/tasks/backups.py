"""Scheduled nightly backup of the business collections."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from bizops.models.backup import Backup
from bizops.models.settings import SystemSettings
from bizops.services.backup_service import COLLECTIONS, SCHEDULED_NOTE, build_payload
from bizops.services.settings_service import SETTINGS_KEY, merge_defaults
from bizops.tasks.celery_app import celery_app
from bizops.tasks.db import sync_engine

logger = logging.getLogger(__name__)


def snapshot(session: Session, note: str = SCHEDULED_NOTE) -> Backup:
    """Write one backup row holding every collection and the settings document."""
    rows_by_collection = {
        name: list(session.execute(select(model)).scalars())
        for name, model in COLLECTIONS.items()
    }
    row = session.execute(
        select(SystemSettings).where(SystemSettings.key == SETTINGS_KEY)
    ).scalar_one_or_none()
    payload, counts = build_payload(rows_by_collection, merge_defaults(row.config if row else None))

    backup = Backup(note=note, counts=counts, payload=payload)
    session.add(backup)
    session.commit()
    return backup


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60, retry_backoff=True)
def scheduled_backup(self) -> dict:
    """Nightly snapshot; retried with backoff when the database is unreachable."""
    try:
        engine = sync_engine()
        with Session(engine, expire_on_commit=False) as session:
            backup = snapshot(session)
        engine.dispose()
    except Exception as exc:
        logger.warning(
            "Scheduled backup failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            str(exc),
        )
        raise self.retry(exc=exc)
    logger.info("Scheduled backup %s written (%s)", backup.id, backup.counts)
    return {"status": "created", "backup_id": backup.id, "counts": backup.counts}
