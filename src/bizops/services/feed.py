"""Live change feeds over Redis pub/sub.

Every committed mutation is announced on ``ws:feed:<resource>``. The API
process's PubSubManager forwards those events to WebSocket subscribers
(see ``bizops.ws``), so any number of API instances and Celery workers can
publish and every connected client sees the change.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis
import redis.asyncio

logger = logging.getLogger(__name__)

TOPIC_PREFIX = "ws:feed:"

FEED_RESOURCES = frozenset(
    {
        "ads",
        "customers",
        "transactions",
        "leads",
        "expenses",
        "payroll",
        "tasks",
        "reports",
        "goals",
        "training",
        "settings",
        "users",
    }
)

EVENT_TYPES = frozenset({"created", "updated", "deleted", "reset"})


def build_event(
    resource: str,
    event_type: str,
    resource_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the wire payload for a feed event.

    Raises:
        ValueError: For an unknown resource or event type.
    """
    if resource not in FEED_RESOURCES:
        raise ValueError(f"Unknown feed resource: {resource}")
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown feed event type: {event_type}")
    return {
        "type": event_type,
        "resource": resource,
        "id": resource_id,
        "data": data,
        "at": datetime.now(timezone.utc).isoformat(),
    }


class FeedPublisher:
    """Publishes feed events from the async API process.

    Publishing happens after the database commit, so a failure here must
    not undo or fail the request: errors are logged and swallowed.

    Args:
        redis: The app's async Redis connection (``app.state.redis``).
            Publishing is a regular command, so sharing it is safe.
    """

    def __init__(self, redis: redis.asyncio.Redis | None) -> None:
        self._redis = redis

    async def publish(
        self,
        resource: str,
        event_type: str,
        resource_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        event = build_event(resource, event_type, resource_id, data)
        if self._redis is None:
            return
        try:
            await self._redis.publish(f"{TOPIC_PREFIX}{resource}", json.dumps(event, default=str))
        except Exception:
            logger.warning(
                "Failed to publish %s event for %s/%s",
                event_type,
                resource,
                resource_id,
                exc_info=True,
            )


def publish_sync(
    client: redis.Redis,
    resource: str,
    event_type: str,
    resource_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """Blocking variant for Celery workers (which are sync processes)."""
    event = build_event(resource, event_type, resource_id, data)
    try:
        client.publish(f"{TOPIC_PREFIX}{resource}", json.dumps(event, default=str))
    except Exception:
        logger.warning(
            "Failed to publish %s event for %s from worker",
            event_type,
            resource,
            exc_info=True,
        )
