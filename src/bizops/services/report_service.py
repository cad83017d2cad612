"""Daily reports, team summaries and SMART goals."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc.dashboard import month_bounds, month_of
from bizops.calc.tasks import clean_report_items
from bizops.errors import NotFoundError
from bizops.models.report import SmartGoal, TeamSummary, WorkReport
from bizops.permissions import Principal
from bizops.services.user_service import UserService

logger = logging.getLogger(__name__)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


class ReportService:
    """Service for end-of-day reports and team wrap-ups.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def submit_report(
        self,
        principal: Principal,
        done_tasks: list,
        plan_tasks: list,
        issues: str = "",
        actual_duration: str = "",
        report_date: date | None = None,
    ) -> WorkReport:
        """Save the caller's report for the day, replacing an earlier submission."""
        report_date = report_date or today_utc()
        result = await self.db.execute(
            select(WorkReport).where(
                WorkReport.user_email == principal.email,
                WorkReport.report_date == report_date,
            )
        )
        report = result.scalar_one_or_none()
        if report is None:
            report = WorkReport(user_email=principal.email, report_date=report_date)
            self.db.add(report)

        report.user_name = principal.name
        report.done_tasks = clean_report_items(done_tasks)
        report.plan_tasks = [
            {"title": item["title"], "note": item["note"]}
            for item in clean_report_items(plan_tasks)
        ]
        report.issues = issues
        report.actual_duration = actual_duration

        await self.db.commit()
        await self.db.refresh(report)
        logger.info("Report for %s on %s saved", principal.email, report_date)
        return report

    async def list_reports(
        self,
        month: str | None = None,
        report_date: date | None = None,
        user_email: str | None = None,
    ) -> list[WorkReport]:
        query = select(WorkReport)
        if report_date is not None:
            query = query.where(WorkReport.report_date == report_date)
        elif month:
            first, following = month_bounds(month)
            query = query.where(WorkReport.report_date >= first, WorkReport.report_date < following)
        if user_email:
            query = query.where(WorkReport.user_email == user_email)
        query = query.order_by(WorkReport.report_date.desc(), WorkReport.user_email.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def team_status(self, principal: Principal, report_date: date) -> list[dict]:
        """Who has reported on ``report_date``.

        ADMINs see every active user; others see the members of their team.
        """
        team = None if principal.is_admin else principal.team
        members = await UserService(self.db).list_active(team=team)
        reported = {report.user_email for report in await self.list_reports(report_date=report_date)}
        return [
            {
                "email": user.email,
                "name": user.name,
                "team": user.team,
                "role": user.role,
                "has_reported": user.email in reported,
            }
            for user in members
        ]

    async def save_team_summary(
        self, principal: Principal, report_date: date, result: str, issues: str = ""
    ) -> TeamSummary:
        """Upsert the wrap-up for (date, the caller's team)."""
        if not result.strip():
            raise ValueError("Result is required")
        existing = await self.db.execute(
            select(TeamSummary).where(
                TeamSummary.report_date == report_date, TeamSummary.team == principal.team
            )
        )
        summary = existing.scalar_one_or_none()
        if summary is None:
            summary = TeamSummary(report_date=report_date, team=principal.team)
            self.db.add(summary)
        summary.result = result
        summary.issues = issues
        summary.reporter = principal.name or principal.email

        await self.db.commit()
        await self.db.refresh(summary)
        return summary

    async def list_team_summaries(self, report_date: date) -> list[TeamSummary]:
        result = await self.db.execute(
            select(TeamSummary)
            .where(TeamSummary.report_date == report_date)
            .order_by(TeamSummary.team.asc())
        )
        return list(result.scalars().all())


class GoalService:
    """Service for monthly SMART goals.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_goal(
        self,
        name: str,
        target: int,
        current: int = 0,
        unit: str = "",
        deadline: date | None = None,
        month: str | None = None,
    ) -> SmartGoal:
        if target <= 0:
            raise ValueError("Target must be positive")
        goal = SmartGoal(
            month=month or month_of(today_utc()),
            name=name,
            target=target,
            current=current,
            unit=unit,
            deadline=deadline,
        )
        self.db.add(goal)
        await self.db.commit()
        await self.db.refresh(goal)
        return goal

    async def list_goals(self, month: str | None = None) -> list[SmartGoal]:
        result = await self.db.execute(
            select(SmartGoal)
            .where(SmartGoal.month == (month or month_of(today_utc())))
            .order_by(SmartGoal.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_goal(self, goal_id: str) -> SmartGoal | None:
        result = await self.db.execute(select(SmartGoal).where(SmartGoal.id == goal_id))
        return result.scalar_one_or_none()

    async def update_goal(self, goal_id: str, **kwargs: object) -> SmartGoal:
        goal = await self.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        for field, value in kwargs.items():
            if value is not None or field == "deadline":
                setattr(goal, field, value)
        await self.db.commit()
        await self.db.refresh(goal)
        return goal

    async def delete_goal(self, goal_id: str) -> None:
        goal = await self.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal not found: {goal_id}")
        await self.db.delete(goal)
        await self.db.commit()
