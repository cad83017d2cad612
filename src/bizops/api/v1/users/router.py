"""User allow-list endpoints (ADMIN only).

Password hashes are never returned. Every change is written to the
audit log and announced on the ``users`` feed.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require_admin, service_errors
from bizops.models.user import User
from bizops.permissions import Principal
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.pagination import page_links
from bizops.schemas.user import CreateUserRequest, UpdateUserRequest
from bizops.services.activity_service import ActivityService
from bizops.services.feed import FeedPublisher
from bizops.services.user_service import UserService

router = APIRouter()


def _user_to_attrs(user: User) -> dict:
    """Map a User model to JSON:API attributes (without the password hash)."""
    return {
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "team": user.team,
        "is_active": user.is_active,
        "has_password": user.password_hash is not None,
        "permissions": user.permissions or {},
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


def _user_resource(user: User) -> JSONAPIResource:
    return JSONAPIResource(type="users", id=str(user.id), attributes=_user_to_attrs(user))


@router.post("", status_code=201)
async def create_user(
    body: JSONAPIRequest[CreateUserRequest],
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Grant a new user access."""
    attrs = body.data.attributes
    with service_errors():
        user = await UserService(db).create_user(**attrs.model_dump())
    await ActivityService(db).record(
        principal.email, "user_created", "users", str(user.id), f"Granted access to {user.email}",
        {"role": user.role},
    )
    await feed.publish("users", "created", str(user.id), _user_to_attrs(user))
    return JSONAPISingleResponse(data=_user_resource(user))


@router.get("")
async def list_users(
    request: Request,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=50, ge=1, le=200, alias="page[size]"),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List the allow-list with cursor-based pagination."""
    with service_errors(value_error_status=400):
        users, meta = await UserService(db).list_users(page_size=page_size, after=page_after)
    return JSONAPIListResponse(
        data=[_user_resource(u) for u in users],
        meta=meta.model_dump(),
        links=page_links(str(request.url), users, meta, page_size),
    )


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    user = await UserService(db).get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return JSONAPISingleResponse(data=_user_resource(user))


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: JSONAPIRequest[UpdateUserRequest],
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Update role, team, activation, permissions or password."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        user = await UserService(db).update_user(user_id, **update_data)
    await ActivityService(db).record(
        principal.email, "user_updated", "users", str(user.id), f"Updated {user.email}",
        {"fields": sorted(k for k in update_data if k != "password")},
    )
    await feed.publish("users", "updated", str(user.id), _user_to_attrs(user))
    return JSONAPISingleResponse(data=_user_resource(user))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    """Remove a user from the allow-list, revoking access."""
    if user_id == principal.id:
        raise HTTPException(status_code=409, detail="You cannot revoke your own access")
    with service_errors():
        user = await UserService(db).delete_user(user_id)
    await ActivityService(db).record(
        principal.email, "user_deleted", "users", user_id, f"Revoked access for {user.email}"
    )
    await feed.publish("users", "deleted", user_id)
