"""WebSocket endpoint that subscribes a viewer to the snapshot stream."""
from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from marlin.observability import bind_connection_id, reset_connection_id
from marlin.services import BroadcastHub, WebSocketConnection

logger = logging.getLogger(__name__)


async def stream_endpoint(websocket: WebSocket) -> None:
    hub: BroadcastHub | None = getattr(websocket.app.state, "hub", None)
    if hub is None:
        await websocket.close(code=1013, reason="Hub not ready")
        return
    await websocket.accept()
    connection_id = hub.register(WebSocketConnection(websocket))
    token = bind_connection_id(connection_id)
    try:
        while True:
            message = await websocket.receive_text()
            logger.debug("Received from viewer: %s", message[:200])
    except WebSocketDisconnect as exc:
        logger.info("Viewer disconnected (code %s)", exc.code)
    except RuntimeError as exc:
        # Raised by Starlette when the server closed the socket first.
        logger.debug("Viewer socket closed: %s", exc)
    finally:
        hub.remove(connection_id)
        reset_connection_id(token)


def build_router(path: str = "/ws") -> APIRouter:
    router = APIRouter()
    router.add_api_websocket_route(path, stream_endpoint)
    return router
