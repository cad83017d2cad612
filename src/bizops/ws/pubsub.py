"""Process-wide Redis subscription that feeds local WebSocket clients.

API processes and Celery workers publish to ``ws:feed:<resource>``. Each
API process holds one pattern subscription on its own connection (a
subscribed connection cannot run other commands) and hands every event to
a callback, normally ``ConnectionManager.broadcast``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis

from bizops.services.feed import FEED_RESOURCES, TOPIC_PREFIX

logger = logging.getLogger(__name__)

FeedHandler = Callable[[str, dict], Awaitable[None]]


def parse_feed_message(message: dict) -> tuple[str, dict] | None:
    """Turn a raw ``pmessage`` into ``(resource, event)``, or None to skip it."""
    if message.get("type") != "pmessage":
        return None
    resource = str(message["channel"]).removeprefix(TOPIC_PREFIX)
    if resource not in FEED_RESOURCES:
        logger.debug("Ignoring event for unknown feed %s", resource)
        return None
    try:
        event = json.loads(message["data"])
    except (json.JSONDecodeError, TypeError):
        logger.warning("Dropping malformed event on %s", message["channel"])
        return None
    return resource, event


class PubSubManager:
    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._client: aioredis.Redis | None = None
        self._pubsub = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, handler: FeedHandler) -> None:
        self._client = aioredis.from_url(self._redis_url, decode_responses=True)
        self._pubsub = self._client.pubsub()
        await self._pubsub.psubscribe(f"{TOPIC_PREFIX}*")
        self._task = asyncio.create_task(self._forward(handler), name="feed-pubsub")
        logger.info("Subscribed to %s*", TOPIC_PREFIX)

    async def _forward(self, handler: FeedHandler) -> None:
        try:
            async for message in self._pubsub.listen():
                parsed = parse_feed_message(message)
                if parsed is None:
                    continue
                resource, event = parsed
                try:
                    await handler(resource, event)
                except Exception:
                    logger.exception("Failed to fan out %s event", resource)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Feed subscription stopped unexpectedly")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub is not None:
            try:
                await self._pubsub.punsubscribe()
                await self._pubsub.aclose()
            except Exception:
                logger.debug("Error closing feed subscription", exc_info=True)
        if self._client is not None:
            await self._client.aclose()
        logger.info("Feed subscription closed")
