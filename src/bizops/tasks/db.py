"""Blocking database and Redis handles for Celery workers."""

import redis
import sqlalchemy
from sqlalchemy.engine import Engine

from bizops.config import get_settings


def sync_database_url(database_url: str) -> str:
    """Swap the async driver for its blocking counterpart."""
    return (
        database_url.replace("postgresql+asyncpg://", "postgresql://")
        .replace("sqlite+aiosqlite://", "sqlite://")
    )


def sync_engine() -> Engine:
    settings = get_settings()
    return sqlalchemy.create_engine(sync_database_url(settings.database_url))


def sync_redis() -> redis.Redis:
    return redis.Redis.from_url(get_settings().redis_url, decode_responses=True)
