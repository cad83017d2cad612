"""In-process WebSocket connection manager for per-resource feed fan-out."""

from __future__ import annotations

import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Track WebSocket subscribers per feed resource for local fan-out.

    Keys are resource -> client_id -> WebSocket instance.
    Dead connections are automatically cleaned up during broadcast.
    """

    def __init__(self) -> None:
        self.feeds: dict[str, dict[str, WebSocket]] = defaultdict(dict)

    async def connect(self, websocket: WebSocket, resource: str, client_id: str) -> None:
        """Accept a WebSocket connection and subscribe it to a feed."""
        await websocket.accept()
        self.feeds[resource][client_id] = websocket

    def disconnect(self, resource: str, client_id: str) -> None:
        """Remove a subscriber. Cleans up empty feed dicts."""
        subscribers = self.feeds.get(resource)
        if subscribers is None:
            return
        subscribers.pop(client_id, None)
        if not subscribers:
            del self.feeds[resource]

    async def broadcast(self, resource: str, event: dict) -> None:
        """Send an event to every local subscriber of ``resource``.

        Any connection that raises on send is treated as dead and removed.
        """
        dead: list[str] = []
        for client_id, ws in list(self.feeds.get(resource, {}).items()):
            try:
                await ws.send_json(event)
            except Exception:
                dead.append(client_id)
        for client_id in dead:
            logger.debug(
                "Removing dead WebSocket connection: feed=%s client=%s",
                resource,
                client_id,
            )
            self.disconnect(resource, client_id)

    def subscriber_count(self, resource: str) -> int:
        return len(self.feeds.get(resource, {}))
