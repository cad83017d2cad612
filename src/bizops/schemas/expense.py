"""Pydantic v2 schemas for the spending book."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from bizops.schemas.common import Amount


class CreateExpenseRequest(BaseModel):
    spent_on: date
    category: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    amount: Amount = Field(..., gt=0)
    note: str = ""


class UpdateExpenseRequest(BaseModel):
    spent_on: date | None = None
    category: str | None = Field(default=None, min_length=1, max_length=100)
    content: str | None = Field(default=None, min_length=1)
    amount: Amount | None = Field(default=None, gt=0)
    note: str | None = None


class ReviewExpenseRequest(BaseModel):
    note: str = ""
