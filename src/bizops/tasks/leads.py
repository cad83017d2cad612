"""Periodic round-robin assignment of unassigned leads.

Runs under Celery beat. Uses the same rotation cursor as the admin-triggered
distribution so both continue one sequence.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from bizops.calc import leads as leads_calc
from bizops.models.lead import Lead
from bizops.models.settings import SystemSettings
from bizops.models.user import User
from bizops.services.feed import publish_sync
from bizops.services.lead_service import assign_lead
from bizops.services.settings_service import SETTINGS_KEY, merge_defaults
from bizops.services.user_service import SALES_ROLES
from bizops.tasks.celery_app import celery_app
from bizops.tasks.db import sync_engine, sync_redis

logger = logging.getLogger(__name__)


def assign_pending(session: Session) -> tuple[list[Lead], int]:
    """Assign every unassigned lead if auto-assign is enabled.

    Returns:
        The assigned leads and the rotation cursor after the run.
    """
    row = session.execute(
        select(SystemSettings).where(SystemSettings.key == SETTINGS_KEY)
    ).scalar_one_or_none()
    config = merge_defaults(row.config if row else None)
    cursor = int(config["leads"]["next_index"])
    if not config["leads"]["auto_assign"]:
        return [], cursor

    staff = list(
        session.execute(
            select(User)
            .where(User.is_active.is_(True), User.role.in_(SALES_ROLES))
            .order_by(User.created_at.asc(), User.email.asc())
        ).scalars()
    )
    targets = list(
        session.execute(
            select(Lead)
            .where(Lead.sale_id.is_(None))
            .order_by(Lead.received_at.asc(), Lead.id.asc())
        ).scalars()
    )
    if not staff or not targets:
        return [], cursor

    pairs, cursor = leads_calc.round_robin(targets, staff, cursor)
    for lead, seller in pairs:
        assign_lead(lead, seller)

    config["leads"]["next_index"] = cursor
    if row is None:
        session.add(SystemSettings(key=SETTINGS_KEY, config=config))
    else:
        row.config = config
    session.commit()
    return targets, cursor


@celery_app.task(bind=True, max_retries=2, default_retry_delay=30)
def auto_assign_leads(self) -> dict:
    """Hand unassigned leads to active sellers and notify the leads feed."""
    try:
        engine = sync_engine()
        with Session(engine, expire_on_commit=False) as session:
            assigned, cursor = assign_pending(session)
        engine.dispose()
    except Exception as exc:
        logger.warning(
            "Lead auto-assign failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            str(exc),
        )
        raise self.retry(exc=exc)

    if assigned:
        client = sync_redis()
        for lead in assigned:
            publish_sync(
                client,
                "leads",
                "updated",
                lead.id,
                {"sale_id": lead.sale_id, "sale_name": lead.sale_name, "status": lead.status},
            )
        client.close()
        logger.info("Auto-assigned %d leads", len(assigned))
    return {"status": "assigned", "count": len(assigned), "next_index": cursor}
