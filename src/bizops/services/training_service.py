"""Training calendar: events, class templates and batch scheduling."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc import training as training_calc
from bizops.calc.dashboard import month_bounds
from bizops.errors import NotFoundError
from bizops.models.training import TrainingEvent, TrainingTemplate

logger = logging.getLogger(__name__)


class TrainingService:
    """Service for calendar events and class templates.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def list_events(
        self, month: str | None = None, week_of: date | None = None
    ) -> list[TrainingEvent]:
        """List events of a month, or of the Monday-started week containing ``week_of``."""
        query = select(TrainingEvent)
        if week_of is not None:
            monday = week_of - timedelta(days=week_of.weekday())
            query = query.where(
                TrainingEvent.date >= monday, TrainingEvent.date < monday + timedelta(days=7)
            )
        elif month:
            first, following = month_bounds(month)
            query = query.where(TrainingEvent.date >= first, TrainingEvent.date < following)
        query = query.order_by(TrainingEvent.date.asc(), TrainingEvent.time.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_event(self, event_id: str) -> TrainingEvent | None:
        result = await self.db.execute(select(TrainingEvent).where(TrainingEvent.id == event_id))
        return result.scalar_one_or_none()

    async def create_event(self, **fields: object) -> TrainingEvent:
        event = TrainingEvent(**fields)
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def update_event(self, event_id: str, **kwargs: object) -> TrainingEvent:
        event = await self.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        for field, value in kwargs.items():
            if value is not None:
                setattr(event, field, value)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def delete_event(self, event_id: str) -> None:
        event = await self.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        await self.db.delete(event)
        await self.db.commit()

    async def create_batch(
        self,
        template_id: str,
        start_date: date,
        batch_code: str = "",
        color: str | None = None,
        sessions: list | None = None,
    ) -> list[TrainingEvent]:
        """Create every session of a class from a template.

        ``sessions`` (each with ``date``, ``time``, ``trainer``) overrides
        the schedule generated from the template.

        Raises:
            NotFoundError: If the template is not found.
            ValueError: If the schedule is empty.
        """
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")

        if sessions:
            plan = [
                {
                    "date": session.date,
                    "time": session.time or template.time,
                    "trainer": session.trainer or template.trainer,
                    "title_suffix": f"(Session {index})",
                }
                for index, session in enumerate(sessions, start=1)
            ]
        else:
            plan = training_calc.generate_schedule(
                template.sessions,
                start_date,
                template.preferred_days or [],
                template.time,
                template.trainer,
            )
        if not plan:
            raise ValueError("No sessions could be scheduled")

        code = batch_code.strip()
        events = [
            TrainingEvent(
                title=training_calc.batch_title(template.title, code, item["title_suffix"]),
                date=item["date"],
                time=item["time"],
                trainer=item["trainer"],
                location=template.location,
                color=color or template.color,
                template_id=template.id,
                batch_code=code,
            )
            for item in plan
        ]
        self.db.add_all(events)
        await self.db.commit()
        for event in events:
            await self.db.refresh(event)
        logger.info("Scheduled %d sessions of '%s' (%s)", len(events), template.title, code or "no code")
        return events

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def list_templates(self) -> list[TrainingTemplate]:
        result = await self.db.execute(
            select(TrainingTemplate).order_by(TrainingTemplate.title.asc())
        )
        return list(result.scalars().all())

    async def get_template(self, template_id: str) -> TrainingTemplate | None:
        result = await self.db.execute(
            select(TrainingTemplate).where(TrainingTemplate.id == template_id)
        )
        return result.scalar_one_or_none()

    async def create_template(self, **fields: object) -> TrainingTemplate:
        template = TrainingTemplate(**fields)
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def update_template(self, template_id: str, **kwargs: object) -> TrainingTemplate:
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")
        for field, value in kwargs.items():
            if value is not None:
                setattr(template, field, value)
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def delete_template(self, template_id: str) -> None:
        """Delete a template. Its scheduled events stay on the calendar."""
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")
        events = await self.db.execute(
            select(TrainingEvent).where(TrainingEvent.template_id == template_id)
        )
        for event in events.scalars().all():
            event.template_id = None
        await self.db.delete(template)
        await self.db.commit()

    async def template_classes(self, template_id: str) -> list[dict]:
        """Group the template's events into classes, newest first."""
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")
        result = await self.db.execute(select(TrainingEvent))
        return training_calc.group_classes(template.id, template.title, result.scalars().all())
