"""Pydantic v2 schemas for the user allow-list CRUD API."""

from __future__ import annotations

from pydantic import BaseModel, Field

ROLE_PATTERN = "^(ADMIN|SALE_LEADER|LEADER|SALE|STAFF)$"


class CreateUserRequest(BaseModel):
    """Request body for granting a new user access.

    ``password`` is optional so that access can be granted before the
    user has credentials; such users cannot log in until one is set.
    """

    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(default="", max_length=100)
    role: str = Field(default="STAFF", pattern=ROLE_PATTERN)
    team: str = Field(default="CHUNG", min_length=1, max_length=50)
    is_active: bool = True
    password: str | None = Field(default=None, min_length=8, max_length=128)
    permissions: dict[str, dict[str, bool]] = Field(default_factory=dict)


class UpdateUserRequest(BaseModel):
    """Partial update request for an existing user.

    All fields are optional -- only provided fields are applied.
    """

    name: str | None = Field(default=None, max_length=100)
    role: str | None = Field(default=None, pattern=ROLE_PATTERN)
    team: str | None = Field(default=None, min_length=1, max_length=50)
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    permissions: dict[str, dict[str, bool]] | None = None


class AssignTeamRequest(BaseModel):
    email: str
    team: str = Field(..., min_length=1, max_length=50)
