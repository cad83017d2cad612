"""System router providing health check and operational endpoints."""

from fastapi import APIRouter, Request

from bizops.database import ping_database
from bizops.redis import ping_redis
from bizops.schemas.jsonapi import JSONAPIResource, JSONAPISingleResponse

router = APIRouter()


@router.get("/health", response_model=JSONAPISingleResponse)
async def health_check(request: Request) -> JSONAPISingleResponse:
    """Return system health status including database and Redis connectivity.

    Reports ``healthy`` when both are reachable and ``degraded`` otherwise.
    """
    db_ok = await ping_database(request.app.state.session_factory)
    redis_ok = await ping_redis(getattr(request.app.state, "redis", None))

    status = "healthy" if (db_ok and redis_ok) else "degraded"

    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="system-health",
            id="current",
            attributes={
                "status": status,
                "database": "connected" if db_ok else "disconnected",
                "redis": "connected" if redis_ok else "disconnected",
            },
        )
    )
