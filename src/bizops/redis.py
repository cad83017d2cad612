"""Shared async Redis client used for feed publishing and health checks.

The pub/sub listener opens its own connection (see ``bizops.ws.pubsub``)
because a subscribed connection cannot issue regular commands.
"""

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


async def init_redis(redis_url: str) -> aioredis.Redis:
    client = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True, max_connections=20)
    await client.ping()
    return client


async def ping_redis(client) -> bool:
    if client is None:
        return False
    try:
        await client.ping()
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return False
    return True


async def close_redis(client: aioredis.Redis) -> None:
    await client.aclose()
