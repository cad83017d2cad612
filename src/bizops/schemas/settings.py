"""Pydantic v2 schemas for system settings, backups and data reset."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ReplaceSettingsRequest(BaseModel):
    """Whole-document replacement; missing sections fall back to defaults."""

    config: dict[str, Any]


class ListItemRequest(BaseModel):
    """Add or remove one entry of a list-valued setting such as ``global.courses``."""

    section: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    value: str = Field(..., max_length=200)


class AutoAssignRequest(BaseModel):
    enabled: bool


class CreateBackupRequest(BaseModel):
    note: str | None = Field(default=None, max_length=500)


class ConfirmRequest(BaseModel):
    """Typed confirmation for destructive operations."""

    confirm: str
