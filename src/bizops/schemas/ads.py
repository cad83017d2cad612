"""Pydantic v2 schemas for the ads spend sheet."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from bizops.schemas.common import Amount


class CreateAdRequest(BaseModel):
    """Request body for adding a row to the sheet.

    Every field is optional: ``course`` defaults to the most recently
    configured course and ``date`` to today.
    """

    date: dt.date | None = None
    course: str | None = Field(default=None, max_length=50)
    content_name: str = ""
    content_main: str = ""
    format: str = Field(default="Video", max_length=30)
    budget: Amount = 0
    spent: Amount = 0
    mess: int = Field(default=0, ge=0)
    orders_mong: int = Field(default=0, ge=0)
    orders_thanh: int = Field(default=0, ge=0)
    price_per_course: Amount = 3_500_000
    base_cost: Amount = 0
    evaluation: str = Field(default="normal", max_length=30)
    action: str = Field(default="monitor", max_length=30)
    status: str = Field(default="new", max_length=20)
    link: str = ""


class UpdateAdRequest(BaseModel):
    """Partial update; the sheet saves each edited cell immediately."""

    date: dt.date | None = None
    course: str | None = Field(default=None, max_length=50)
    content_name: str | None = None
    content_main: str | None = None
    format: str | None = Field(default=None, max_length=30)
    budget: Amount | None = None
    spent: Amount | None = None
    mess: int | None = Field(default=None, ge=0)
    orders_mong: int | None = Field(default=None, ge=0)
    orders_thanh: int | None = Field(default=None, ge=0)
    price_per_course: Amount | None = None
    base_cost: Amount | None = None
    evaluation: str | None = Field(default=None, max_length=30)
    action: str | None = Field(default=None, max_length=30)
    status: str | None = Field(default=None, max_length=20)
    link: str | None = None


class AddCourseRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
