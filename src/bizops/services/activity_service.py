"""Audit trail for privileged and destructive operations.

Writing an entry never raises. A failed write is logged and the caller
carries on, because the operation being audited has already succeeded.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.models.activity import ActivityLog
from bizops.schemas.pagination import PaginationMeta, apply_cursor, split_page

logger = logging.getLogger(__name__)


class ActivityService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        actor: str,
        action: str,
        resource: str,
        resource_id: str | None = None,
        summary: str = "",
        details: dict | None = None,
    ) -> ActivityLog | None:
        """Write and commit one entry, e.g. ``("admin@x", "backup_restored", "backups", id)``."""
        entry = ActivityLog(
            actor=actor,
            action=action,
            resource=resource,
            resource_id=resource_id,
            summary=summary,
            details=details,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
        except Exception:
            logger.warning("Could not record %s by %s", action, actor, exc_info=True)
            await self.db.rollback()
            return None
        return entry

    async def list_activities(
        self,
        page_size: int = 100,
        after: str | None = None,
        resource: str | None = None,
        actor: str | None = None,
    ) -> tuple[list[ActivityLog], PaginationMeta]:
        query = select(ActivityLog)
        if resource is not None:
            query = query.where(ActivityLog.resource == resource)
        if actor is not None:
            query = query.where(ActivityLog.actor == actor.strip().lower())
        query = apply_cursor(query, ActivityLog, after, page_size, newest_first=True)
        result = await self.db.execute(query)
        return split_page(result.scalars().all(), page_size, after)
