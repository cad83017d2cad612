"""Pydantic v2 schemas for the training calendar and resource library."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

from pydantic import BaseModel, Field

from bizops.schemas.common import ClockTime

ROOT_PATTERN = "^(docs|tools)$"

#: Weekday number, 0 = Sunday ... 6 = Saturday.
Weekday = Annotated[int, Field(ge=0, le=6)]


class CreateEventRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    date: dt.date
    time: ClockTime = "20:00"
    trainer: str = ""
    location: str = "Zoom"
    color: str = "blue"
    template_id: str | None = None
    batch_code: str = ""


class UpdateEventRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    date: dt.date | None = None
    time: ClockTime | None = None
    trainer: str | None = None
    location: str | None = None
    color: str | None = None
    batch_code: str | None = None


class ScheduledSession(BaseModel):
    """One session of a batch; clients may adjust the generated plan before saving."""

    date: dt.date
    time: ClockTime = "20:00"
    trainer: str = ""


class CreateBatchRequest(BaseModel):
    """Create every session of a class from a template.

    When ``sessions`` is omitted the schedule is generated from the
    template's session count and preferred weekdays.
    """

    template_id: str
    start_date: dt.date
    batch_code: str = ""
    color: str | None = None
    sessions: list[ScheduledSession] | None = None


class TemplateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    sessions: int = Field(default=1, ge=1, le=366)
    time: ClockTime = "20:00"
    trainer: str = ""
    location: str = "Zoom"
    preferred_days: list[Weekday] = Field(default_factory=list)
    color: str = "blue"


class UpdateTemplateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    sessions: int | None = Field(default=None, ge=1, le=366)
    time: ClockTime | None = None
    trainer: str | None = None
    location: str | None = None
    preferred_days: list[Weekday] | None = None
    color: str | None = None


class CreateResourceRequest(BaseModel):
    root: str = Field(..., pattern=ROOT_PATTERN)
    parent_id: str | None = None
    kind: str = Field(..., pattern="^(FOLDER|DOC|FILE)$")
    name: str = Field(..., min_length=1, max_length=300)
    link: str = ""
    file_type: str = ""
    description: str = ""
    content: str = ""


class UpdateResourceRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=300)
    link: str | None = None
    file_type: str | None = None
    description: str | None = None
    content: str | None = None
