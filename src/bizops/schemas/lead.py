"""Pydantic v2 schemas for inbound leads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

LEAD_STATUS_PATTERN = "^(NEW|CALLING|CLOSED)$"


class IngestLeadRequest(BaseModel):
    """Tolerant intake payload posted by web forms and landing pages.

    Form builders disagree on field names, so ``fullname`` and ``mobile``
    are accepted as fallbacks for ``name`` and ``phone``.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    fullname: str | None = None
    phone: str | None = None
    mobile: str | None = None
    course: str | None = None
    source: str = ""
    note: str = ""
    time: datetime | None = None


class UpdateLeadRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = Field(default=None, min_length=1, max_length=50)
    course: str | None = Field(default=None, max_length=50)
    status: str | None = Field(default=None, pattern=LEAD_STATUS_PATTERN)
    note: str | None = None
    sale_id: str | None = None


class DistributeLeadsRequest(BaseModel):
    course: str = "ALL"
