"""Work management endpoints: the task board, teams, daily reports and goals.

Each task carries ``overdue`` and checklist ``progress``; each goal
carries ``progress`` and a month-end ``forecast``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import (
    get_current_principal,
    get_db,
    get_feed,
    require,
    require_admin,
    service_errors,
)
from bizops.calc import goals as goals_calc
from bizops.calc import tasks as tasks_calc
from bizops.models.report import SmartGoal, TeamSummary, WorkReport
from bizops.models.task import WorkTask
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.task import (
    CreateGoalRequest,
    CreateTaskRequest,
    SubmitReportRequest,
    TeamSummaryRequest,
    UpdateGoalRequest,
    UpdateTaskRequest,
)
from bizops.schemas.user import AssignTeamRequest
from bizops.services.activity_service import ActivityService
from bizops.services.feed import FeedPublisher
from bizops.services.report_service import GoalService, ReportService
from bizops.services.settings_service import SettingsService
from bizops.services.task_service import TaskService
from bizops.services.user_service import UserService

router = APIRouter()

manage_tasks = require("tasks", "manage")


def _today() -> date:
    return datetime.now(timezone.utc).date()


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _task_to_attrs(task: WorkTask) -> dict:
    return {
        "title": task.title,
        "description": task.description,
        "assignee": task.assignee,
        "department": task.department,
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "duration": task.duration,
        "priority": task.priority,
        "status": task.status,
        "checklist": task.checklist or [],
        "tags": task.tags or [],
        "attachments": task.attachments or [],
        "creator": task.creator,
        "overdue": tasks_calc.is_overdue(task.deadline, task.status, _today()),
        "progress": tasks_calc.checklist_progress(task.checklist),
        "created_at": task.created_at.isoformat(),
        "updated_at": task.updated_at.isoformat(),
    }


def _report_to_attrs(report: WorkReport) -> dict:
    return {
        "user_email": report.user_email,
        "user_name": report.user_name,
        "report_date": report.report_date.isoformat(),
        "done_tasks": report.done_tasks or [],
        "plan_tasks": report.plan_tasks or [],
        "issues": report.issues,
        "actual_duration": report.actual_duration,
        "updated_at": report.updated_at.isoformat(),
    }


def _summary_to_attrs(summary: TeamSummary) -> dict:
    return {
        "report_date": summary.report_date.isoformat(),
        "team": summary.team,
        "result": summary.result,
        "issues": summary.issues,
        "reporter": summary.reporter,
    }


def _goal_to_attrs(goal: SmartGoal) -> dict:
    return {
        "month": goal.month,
        "name": goal.name,
        "target": goal.target,
        "current": goal.current,
        "unit": goal.unit,
        "deadline": goal.deadline.isoformat() if goal.deadline else None,
        "progress": goals_calc.progress(goal.current, goal.target),
        "forecast": goals_calc.forecast(goal.current, goal.target, _today()),
    }


def _task_resource(task: WorkTask) -> JSONAPIResource:
    return JSONAPIResource(type="tasks", id=str(task.id), attributes=_task_to_attrs(task))


def _report_resource(report: WorkReport) -> JSONAPIResource:
    return JSONAPIResource(type="reports", id=str(report.id), attributes=_report_to_attrs(report))


def _goal_resource(goal: SmartGoal) -> JSONAPIResource:
    return JSONAPIResource(type="goals", id=str(goal.id), attributes=_goal_to_attrs(goal))


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


@router.get("/teams")
async def list_teams(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    config = await SettingsService(db).get_config()
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="teams", id="tasks", attributes={"teams": config["tasks"]["teams"]})
    )


@router.put("/teams/members")
async def assign_member_team(
    body: JSONAPIRequest[AssignTeamRequest],
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Move a user to a configured team."""
    attrs = body.data.attributes
    config = await SettingsService(db).get_config()
    if attrs.team not in config["tasks"]["teams"]:
        raise HTTPException(status_code=422, detail=f"Unknown team: {attrs.team}")
    with service_errors():
        user = await UserService(db).assign_team(attrs.email, attrs.team)
    await ActivityService(db).record(
        principal.email, "user_team_changed", "users", str(user.id), f"{user.email} -> {user.team}"
    )
    await feed.publish("users", "updated", str(user.id), {"email": user.email, "team": user.team})
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="team-members", id=str(user.id), attributes={"email": user.email, "team": user.team}
        )
    )


# ---------------------------------------------------------------------------
# Daily reports
# ---------------------------------------------------------------------------


@router.post("/reports")
async def submit_report(
    body: JSONAPIRequest[SubmitReportRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Submit (or resubmit) the caller's report for today."""
    attrs = body.data.attributes
    report = await ReportService(db).submit_report(
        principal, attrs.done_tasks, attrs.plan_tasks, attrs.issues, attrs.actual_duration
    )
    report_attrs = _report_to_attrs(report)
    await feed.publish("reports", "updated", str(report.id), report_attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="reports", id=str(report.id), attributes=report_attrs)
    )


@router.get("/reports")
async def list_reports(
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    report_date: date | None = Query(default=None, alias="date"),
    user_email: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List reports by month or by date. Non-leaders only see their own."""
    if not (principal.is_admin or principal.role == "LEADER"):
        user_email = principal.email
    reports = await ReportService(db).list_reports(month, report_date, user_email)
    return JSONAPIListResponse(
        data=[_report_resource(r) for r in reports],
        meta={"total": len(reports)},
    )


@router.get("/reports/team-status")
async def team_status(
    report_date: date | None = Query(default=None, alias="date"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Who has reported on the day (ADMIN: everyone; others: their team)."""
    if not (principal.is_admin or principal.role == "LEADER"):
        raise HTTPException(status_code=403, detail="Leader access required")
    report_date = report_date or _today()
    members = await ReportService(db).team_status(principal, report_date)
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(type="report-statuses", id=m["email"], attributes=m)
            for m in members
        ],
        meta={
            "date": report_date.isoformat(),
            "total": len(members),
            "reported": sum(1 for m in members if m["has_reported"]),
        },
    )


@router.put("/reports/team-summary")
async def save_team_summary(
    body: JSONAPIRequest[TeamSummaryRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Save the wrap-up for the caller's team on a date."""
    if not (principal.is_admin or principal.role == "LEADER"):
        raise HTTPException(status_code=403, detail="Leader access required")
    attrs = body.data.attributes
    with service_errors():
        summary = await ReportService(db).save_team_summary(
            principal, attrs.report_date, attrs.result, attrs.issues
        )
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="team-summaries", id=str(summary.id), attributes=_summary_to_attrs(summary))
    )


@router.get("/reports/team-summaries")
async def list_team_summaries(
    report_date: date | None = Query(default=None, alias="date"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    summaries = await ReportService(db).list_team_summaries(report_date or _today())
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(type="team-summaries", id=str(s.id), attributes=_summary_to_attrs(s))
            for s in summaries
        ],
        meta={"total": len(summaries)},
    )


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


@router.get("/goals")
async def list_goals(
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    goals = await GoalService(db).list_goals(month)
    return JSONAPIListResponse(data=[_goal_resource(g) for g in goals], meta={"total": len(goals)})


@router.post("/goals", status_code=201)
async def create_goal(
    body: JSONAPIRequest[CreateGoalRequest],
    principal: Principal = Depends(manage_tasks),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    with service_errors():
        goal = await GoalService(db).create_goal(**body.data.attributes.model_dump())
    attrs = _goal_to_attrs(goal)
    await feed.publish("goals", "created", str(goal.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="goals", id=str(goal.id), attributes=attrs))


@router.patch("/goals/{goal_id}")
async def update_goal(
    goal_id: str,
    body: JSONAPIRequest[UpdateGoalRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        goal = await GoalService(db).update_goal(goal_id, **update_data)
    attrs = _goal_to_attrs(goal)
    await feed.publish("goals", "updated", str(goal.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="goals", id=str(goal.id), attributes=attrs))


@router.delete("/goals/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: str,
    principal: Principal = Depends(manage_tasks),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await GoalService(db).delete_goal(goal_id)
    await feed.publish("goals", "deleted", goal_id)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_task(
    body: JSONAPIRequest[CreateTaskRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Create a task (ADMIN/LEADER); department defaults to the creator's team."""
    with service_errors():
        task = await TaskService(db).create_task(principal, **body.data.attributes.model_dump())
    attrs = _task_to_attrs(task)
    await feed.publish("tasks", "created", str(task.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="tasks", id=str(task.id), attributes=attrs))


@router.get("")
async def list_tasks(
    status: str | None = Query(default=None),
    assignee: str | None = Query(default=None),
    department: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    tasks = await TaskService(db).list_tasks(principal, status, assignee, department)
    resources = [_task_resource(t) for t in tasks]
    return JSONAPIListResponse(
        data=resources,
        meta={
            "total": len(resources),
            "overdue": sum(1 for r in resources if r.attributes["overdue"]),
        },
    )


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    with service_errors():
        task = await TaskService(db).get_visible_task(principal, task_id)
    return JSONAPISingleResponse(data=_task_resource(task))


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    body: JSONAPIRequest[UpdateTaskRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        task = await TaskService(db).update_task(principal, task_id, **update_data)
    attrs = _task_to_attrs(task)
    await feed.publish("tasks", "updated", str(task.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="tasks", id=str(task.id), attributes=attrs))


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await TaskService(db).delete_task(principal, task_id)
    await feed.publish("tasks", "deleted", task_id)
