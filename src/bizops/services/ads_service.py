"""Ads spend sheet service.

Rows are stored raw; derived metrics (revenue, ROAS, close rate, ...) are
computed on read by :mod:`bizops.calc.ads` so they never go stale.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc import ads as ads_calc
from bizops.errors import NotFoundError
from bizops.models.ads import AdCampaign
from bizops.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class AdsService:
    """Service for ad row CRUD and sheet summaries.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_ads(
        self,
        course: str = "ALL",
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AdCampaign]:
        """List rows, newest date first. ``course="ALL"`` disables the course filter."""
        query = select(AdCampaign)
        if course and course != "ALL":
            query = query.where(AdCampaign.course == course)
        if date_from is not None:
            query = query.where(AdCampaign.date >= date_from)
        if date_to is not None:
            query = query.where(AdCampaign.date <= date_to)
        query = query.order_by(AdCampaign.date.desc(), AdCampaign.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def summary(
        self,
        course: str = "ALL",
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict:
        rows = await self.list_ads(course, date_from, date_to)
        return ads_calc.summarize(rows)

    async def get_ad(self, ad_id: str) -> AdCampaign | None:
        result = await self.db.execute(select(AdCampaign).where(AdCampaign.id == ad_id))
        return result.scalar_one_or_none()

    async def create_ad(self, **fields: object) -> AdCampaign:
        """Add a row. Course defaults to the last configured course, date to today."""
        if not fields.get("course"):
            courses = await SettingsService(self.db).courses()
            fields["course"] = courses[-1] if courses else "Other"
        if fields.get("date") is None:
            fields["date"] = datetime.now(timezone.utc).date()
        ad = AdCampaign(**fields)
        self.db.add(ad)
        await self.db.commit()
        await self.db.refresh(ad)
        logger.info("Created ad row %s for %s", ad.id, ad.course)
        return ad

    async def update_ad(self, ad_id: str, **kwargs: object) -> AdCampaign:
        """Partial update of one or more cells.

        Raises:
            NotFoundError: If the row is not found.
        """
        ad = await self.get_ad(ad_id)
        if ad is None:
            raise NotFoundError(f"Ad not found: {ad_id}")

        for field, value in kwargs.items():
            if value is not None:
                setattr(ad, field, value)

        await self.db.commit()
        await self.db.refresh(ad)
        return ad

    async def delete_ad(self, ad_id: str) -> None:
        ad = await self.get_ad(ad_id)
        if ad is None:
            raise NotFoundError(f"Ad not found: {ad_id}")
        await self.db.delete(ad)
        await self.db.commit()
