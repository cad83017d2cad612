"""Pydantic v2 schemas for the task board, daily reports and goals."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from bizops.schemas.common import Month

PRIORITY_PATTERN = "^(LOW|NORMAL|HIGH|URGENT)$"
STATUS_PATTERN = "^(TODO|DOING|DONE)$"


class ChecklistItem(BaseModel):
    text: str
    done: bool = False


class CreateTaskRequest(BaseModel):
    """Request body for creating a task.

    ``department`` defaults to the creator's team when omitted.
    """

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    assignee: str | None = None
    department: str | None = Field(default=None, max_length=50)
    deadline: date | None = None
    duration: str = ""
    priority: str = Field(default="NORMAL", pattern=PRIORITY_PATTERN)
    status: str = Field(default="TODO", pattern=STATUS_PATTERN)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)


class UpdateTaskRequest(BaseModel):
    """Partial update request -- only provided fields are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    assignee: str | None = None
    department: str | None = Field(default=None, max_length=50)
    deadline: date | None = None
    duration: str | None = None
    priority: str | None = Field(default=None, pattern=PRIORITY_PATTERN)
    status: str | None = Field(default=None, pattern=STATUS_PATTERN)
    checklist: list[ChecklistItem] | None = None
    tags: list[str] | None = None
    attachments: list[str] | None = None


class ReportLine(BaseModel):
    title: str = ""
    note: str = ""
    is_done: bool = False


class SubmitReportRequest(BaseModel):
    done_tasks: list[ReportLine] = Field(default_factory=list)
    plan_tasks: list[ReportLine] = Field(default_factory=list)
    issues: str = ""
    actual_duration: str = ""


class TeamSummaryRequest(BaseModel):
    report_date: date
    result: str = Field(..., min_length=1)
    issues: str = ""


class CreateGoalRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    target: int = Field(..., gt=0)
    current: int = Field(default=0, ge=0)
    unit: str = Field(default="", max_length=30)
    deadline: date | None = None
    month: Month | None = None


class UpdateGoalRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    target: int | None = Field(default=None, gt=0)
    current: int | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, max_length=30)
    deadline: date | None = None
