"""Shared FastAPI dependencies: database sessions, Redis, feeds and the caller's identity."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable, Iterator
from contextlib import contextmanager

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.errors import ConflictError, NotFoundError
from bizops.permissions import Principal
from bizops.security import decode_access_token
from bizops.services.feed import FeedPublisher
from bizops.services.user_service import UserService

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session from the app-level session factory.

    The session factory is stored on ``request.app.state.session_factory``
    by the application lifespan. The session auto-closes when the request ends.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_redis(request: Request) -> Redis | None:
    """Return the async Redis client stored on app state, if any."""
    return getattr(request.app.state, "redis", None)


async def get_feed(request: Request) -> FeedPublisher:
    """Provide a FeedPublisher over the app's Redis connection.

    Publishing is a regular command, not blocking, so sharing the
    connection is safe.
    """
    return FeedPublisher(redis=getattr(request.app.state, "redis", None))


async def principal_from_token(db: AsyncSession, token: str) -> Principal | None:
    """Resolve a bearer token to an active user, or None."""
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected token: %s", exc)
        return None
    user = await UserService(db).get_by_email(payload["sub"])
    if user is None or not user.is_active:
        return None
    return Principal.from_user(user)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Authenticate the request. The user must still exist and be active."""
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal = await principal_from_token(db, credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require(module: str, action: str) -> Callable:
    """Dependency factory: the caller must be allowed ``action`` on ``module``."""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.can(module, action):
            raise HTTPException(status_code=403, detail=f"Not allowed to {action} {module}")
        return principal

    return dependency


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal


@contextmanager
def service_errors(value_error_status: int = 422) -> Iterator[None]:
    """Translate service exceptions into HTTP errors.

    NotFoundError -> 404, ConflictError -> 409, PermissionError -> 403,
    any other ValueError -> ``value_error_status``.
    """
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=value_error_status, detail=str(exc)) from exc
