"""WebSocket endpoint for live change feeds.

Clients connect to ``/ws/feeds/{resource}?token=<jwt>`` and receive every
``created``/``updated``/``deleted``/``reset`` event for that resource. The
events arrive through the process-wide Redis pattern subscription (see
:class:`bizops.ws.pubsub.PubSubManager`), so changes made on any API
instance or by a worker reach every subscriber.

Session management: the connection is long-lived, so the token is
checked with a short-lived session that is closed before the socket is
accepted.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from bizops.api.deps import principal_from_token
from bizops.services.feed import FEED_RESOURCES

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/feeds/{resource}")
async def feed_websocket(
    websocket: WebSocket,
    resource: str,
    token: str = Query(default=""),
) -> None:
    """Subscribe to one resource feed.

    Flow:
    1. Unknown resource: close 4004
    2. Missing, invalid or revoked token: close 4001
    3. Accept, register and confirm with ``{"type": "subscribed"}``
    4. Answer ``ping`` with ``pong`` until the client disconnects
    """
    if resource not in FEED_RESOURCES:
        await websocket.close(code=4004, reason="Unknown feed")
        return

    session_factory = websocket.app.state.session_factory
    async with session_factory() as db:
        principal = await principal_from_token(db, token) if token else None
    if principal is None:
        await websocket.close(code=4001, reason="Unauthorized")
        return

    connection_manager = websocket.app.state.connection_manager
    client_id = f"{principal.email}:{uuid4().hex[:8]}"
    await connection_manager.connect(websocket, resource, client_id)
    logger.info("Feed subscribed: resource=%s client=%s", resource, client_id)

    try:
        await websocket.send_json({"type": "subscribed", "resource": resource})
        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("Feed disconnected: resource=%s client=%s", resource, client_id)
    except Exception:
        logger.exception("Feed error: resource=%s client=%s", resource, client_id)
    finally:
        connection_manager.disconnect(resource, client_id)
