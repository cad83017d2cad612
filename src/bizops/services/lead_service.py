"""Inbound lead intake, visibility and round-robin distribution.

The rotation cursor lives in the settings document (``leads.next_index``)
so that consecutive distributions, whether triggered by an admin, by
ingest-time auto-assign or by the periodic worker, continue where the
previous one stopped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc import leads as leads_calc
from bizops.errors import ConflictError, NotFoundError
from bizops.models.lead import Lead
from bizops.models.user import User
from bizops.permissions import Principal
from bizops.services.settings_service import SettingsService
from bizops.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_COURSE = "Other"
UNNAMED = "Unnamed"
NO_PHONE = "---"


def sees_all_leads(principal: Principal) -> bool:
    return principal.is_admin or principal.role == "SALE_LEADER"


def assign_lead(lead: Lead, seller: User) -> None:
    lead.sale_id = seller.email
    lead.sale_name = seller.name
    lead.status = "CALLING"


class LeadService:
    """Service for lead intake, listing, editing and distribution.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def ingest(
        self,
        name: str | None = None,
        fullname: str | None = None,
        phone: str | None = None,
        mobile: str | None = None,
        course: str | None = None,
        source: str = "",
        note: str = "",
        time: datetime | None = None,
    ) -> Lead:
        """Store a lead posted by a web form.

        When auto-assign is on the lead goes straight to the next seller
        in rotation; with nobody to assign to it stays unassigned.
        """
        lead = Lead(
            name=(name or fullname or "").strip() or UNNAMED,
            phone=(phone or mobile or "").strip() or NO_PHONE,
            course=(course or "").strip() or DEFAULT_COURSE,
            status="NEW",
            source=source,
            note=note,
            received_at=time or datetime.now(timezone.utc),
        )
        self.db.add(lead)

        settings = SettingsService(self.db)
        auto_assign, cursor = await settings.lead_rotation()
        if auto_assign:
            staff = await UserService(self.db).list_sales_team()
            if staff:
                pairs, next_index = leads_calc.round_robin([lead], staff, cursor)
                for target, seller in pairs:
                    assign_lead(target, seller)
                await settings.set_lead_cursor(next_index)
            else:
                logger.warning("Auto-assign is on but there are no active sales staff")

        await self.db.commit()
        await self.db.refresh(lead)
        logger.info("Ingested lead %s (assigned to %s)", lead.id, lead.sale_id)
        return lead

    async def list_leads(
        self,
        principal: Principal,
        sale_id: str | None = None,
        course: str | None = None,
        q: str | None = None,
        period: str = "all",
        now: datetime | None = None,
    ) -> list[Lead]:
        """List the leads visible to ``principal``, newest first.

        Raises:
            ValueError: For an unknown period.
        """
        if period not in leads_calc.PERIODS:
            raise ValueError(f"Unknown period: {period}")
        now = now or datetime.now(timezone.utc)

        query = select(Lead)
        if sees_all_leads(principal):
            if sale_id:
                query = query.where(Lead.sale_id == sale_id)
        else:
            query = query.where((Lead.sale_id == principal.email) | Lead.sale_id.is_(None))
        if course and course != "ALL":
            query = query.where(Lead.course == course)
        query = query.order_by(Lead.received_at.desc(), Lead.id.desc())

        result = await self.db.execute(query)
        return [
            lead
            for lead in result.scalars().all()
            if leads_calc.matches_period(lead.received_at, period, now)
            and leads_calc.matches_search(lead, q or "")
        ]

    async def get_lead(self, lead_id: str) -> Lead | None:
        result = await self.db.execute(select(Lead).where(Lead.id == lead_id))
        return result.scalar_one_or_none()

    async def update_lead(self, principal: Principal, lead_id: str, **kwargs: object) -> Lead:
        """Partial update of a lead.

        Raises:
            NotFoundError: If the lead is not found.
            PermissionError: If a seller edits someone else's lead, or
                reassigns without the assign permission.
        """
        lead = await self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")
        if not sees_all_leads(principal) and lead.sale_id not in (None, principal.email):
            raise PermissionError("Lead belongs to another seller")

        if "sale_id" in kwargs:
            sale_id = kwargs.pop("sale_id")
            if sale_id != lead.sale_id:
                principal.require("leads", "assign")
                if sale_id:
                    seller = await UserService(self.db).get_by_email(str(sale_id))
                    if seller is None:
                        raise NotFoundError(f"User not found: {sale_id}")
                    lead.sale_id = seller.email
                    lead.sale_name = seller.name
                else:
                    lead.sale_id = None
                    lead.sale_name = None

        for field, value in kwargs.items():
            if value is not None:
                setattr(lead, field, value)

        await self.db.commit()
        await self.db.refresh(lead)
        return lead

    async def delete_lead(self, lead_id: str) -> None:
        lead = await self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")
        await self.db.delete(lead)
        await self.db.commit()

    async def distribute(self, course: str = "ALL") -> tuple[list[Lead], dict[str, int]]:
        """Hand unassigned leads to active sellers in rotation, oldest first.

        Returns:
            The assigned leads and the number of leads per seller email.

        Raises:
            ConflictError: If there are no active sellers or no unassigned leads.
        """
        staff = await UserService(self.db).list_sales_team()
        if not staff:
            raise ConflictError("No active sales staff")

        query = select(Lead).where(Lead.sale_id.is_(None))
        if course and course != "ALL":
            query = query.where(Lead.course == course)
        query = query.order_by(Lead.received_at.asc(), Lead.id.asc())
        result = await self.db.execute(query)
        targets = list(result.scalars().all())
        if not targets:
            raise ConflictError("No unassigned leads")

        settings = SettingsService(self.db)
        _, cursor = await settings.lead_rotation()
        pairs, next_index = leads_calc.round_robin(targets, staff, cursor)

        counts: dict[str, int] = {}
        for lead, seller in pairs:
            assign_lead(lead, seller)
            counts[seller.email] = counts.get(seller.email, 0) + 1
        await settings.set_lead_cursor(next_index)

        await self.db.commit()
        logger.info("Distributed %d leads across %d sellers", len(targets), len(counts))
        return targets, counts
