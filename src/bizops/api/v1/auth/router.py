"""Login, current user and password change endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_current_principal, get_db
from bizops.api.v1.users.router import _user_resource
from bizops.permissions import ROLE_DEFAULTS, Principal
from bizops.schemas.auth import ChangePasswordRequest, LoginRequest
from bizops.schemas.jsonapi import JSONAPIRequest, JSONAPIResource, JSONAPISingleResponse
from bizops.security import create_access_token
from bizops.services.user_service import AccessDeniedError, AuthenticationError, UserService

logger = logging.getLogger(__name__)

router = APIRouter()


def _principal_resource(principal: Principal) -> JSONAPIResource:
    """The caller with every (module, action) they are allowed."""
    allowed: dict[str, list[str]] = {}
    for module, action in ROLE_DEFAULTS:
        if principal.can(module, action):
            allowed.setdefault(module, []).append(action)
    return JSONAPIResource(
        type="principals",
        id=principal.id,
        attributes={
            "email": principal.email,
            "name": principal.name,
            "role": principal.role,
            "team": principal.team,
            "permissions": principal.permissions,
            "allowed": allowed,
        },
    )


@router.post("/login")
async def login(
    body: JSONAPIRequest[LoginRequest],
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Exchange email and password for a bearer token."""
    attrs = body.data.attributes
    try:
        user = await UserService(db).authenticate(attrs.email, attrs.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except AccessDeniedError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc

    token, expires_at = create_access_token(user.email, user.role)
    logger.info("User %s logged in", user.email)
    return JSONAPISingleResponse(
        data=_user_resource(user),
        meta={
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at.isoformat(),
        },
    )


@router.get("/me")
async def me(principal: Principal = Depends(get_current_principal)) -> JSONAPISingleResponse:
    return JSONAPISingleResponse(data=_principal_resource(principal))


@router.post("/password", status_code=204)
async def change_password(
    body: JSONAPIRequest[ChangePasswordRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Change the caller's own password."""
    attrs = body.data.attributes
    try:
        await UserService(db).change_password(
            principal.email, attrs.old_password, attrs.new_password
        )
    except AuthenticationError as exc:
        raise HTTPException(status_code=403, detail="Current password is incorrect") from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
