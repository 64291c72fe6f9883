"""Broadcast hub fanning snapshots out to connected viewers."""
from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Dict, List, Protocol, Tuple

from starlette.websockets import WebSocket, WebSocketState

from marlin.snapshot import Snapshot

logger = logging.getLogger(__name__)

SHUTDOWN_CLOSE_CODE = 1001
SHUTDOWN_CLOSE_REASON = "Server shutdown"


class HubConnection(Protocol):
    @property
    def is_open(self) -> bool:
        ...

    async def send_text(self, text: str) -> None:
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        ...


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the hub's connection interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        await self._ws.send_text(text)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._ws.close(code=code, reason=reason)


class BroadcastHub:
    def __init__(self, *, send_timeout: float = 0.5) -> None:
        self._send_timeout = float(send_timeout)
        self._lock = threading.Lock()
        self._connections: Dict[str, HubConnection] = {}

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def register(self, connection: HubConnection) -> str:
        connection_id = uuid.uuid4().hex
        with self._lock:
            self._connections[connection_id] = connection
            count = len(self._connections)
        logger.info("Viewer %s connected (%s total)", connection_id, count)
        return connection_id

    def remove(self, connection_id: str) -> bool:
        with self._lock:
            removed = self._connections.pop(connection_id, None) is not None
            count = len(self._connections)
        if removed:
            logger.info("Viewer %s removed (%s remaining)", connection_id, count)
        return removed

    def _copy(self) -> List[Tuple[str, HubConnection]]:
        with self._lock:
            return list(self._connections.items())

    async def broadcast(self, snapshot: Snapshot) -> int:
        """Send one snapshot to every open connection; returns successful deliveries."""

        if snapshot.is_empty():
            return 0
        return await self._fan_out(snapshot.to_wire())

    async def broadcast_message(self, message: str) -> int:
        frame = json.dumps({"message": message, "timestamp": datetime.now(timezone.utc).isoformat()})
        return await self._fan_out(frame)

    async def _fan_out(self, frame: str) -> int:
        targets = self._copy()
        if not targets:
            logger.debug("No viewers connected; dropping frame")
            return 0

        live: List[Tuple[str, HubConnection]] = []
        for connection_id, connection in targets:
            if connection.is_open:
                live.append((connection_id, connection))
            else:
                self.remove(connection_id)
        if not live:
            return 0

        results = await asyncio.gather(
            *(self._send(connection_id, connection, frame) for connection_id, connection in live)
        )
        return sum(1 for delivered in results if delivered)

    async def _send(self, connection_id: str, connection: HubConnection, frame: str) -> bool:
        try:
            await asyncio.wait_for(connection.send_text(frame), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.info("Send to viewer %s timed out after %.2fs", connection_id, self._send_timeout)
        except Exception as exc:
            logger.info("Send to viewer %s failed: %s", connection_id, exc)
        else:
            return True
        self.remove(connection_id)
        return False

    async def shutdown(self, timeout: float = 2.0) -> None:
        targets = self._copy()
        if targets:
            logger.info("Closing %s viewer connection(s)", len(targets))
            try:
                await asyncio.wait_for(
                    asyncio.gather(
                        *(self._close(connection_id, connection) for connection_id, connection in targets)
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Viewer close did not finish within %.1fs", timeout)
        with self._lock:
            self._connections.clear()

    async def _close(self, connection_id: str, connection: HubConnection) -> None:
        if not connection.is_open:
            return
        try:
            await connection.close(SHUTDOWN_CLOSE_CODE, SHUTDOWN_CLOSE_REASON)
        except Exception as exc:
            logger.info("Closing viewer %s failed: %s", connection_id, exc)


def threadsafe_broadcaster(hub: BroadcastHub, loop: asyncio.AbstractEventLoop, *, timeout: float = 1.0):
    """Return an emit callback that runs ``hub.broadcast`` on ``loop`` and waits for it.

    Called from the sampler thread; blocks that thread until the broadcast
    finished so snapshots reach viewers in production order.
    """

    def emit(snapshot: Snapshot) -> None:
        future = asyncio.run_coroutine_threadsafe(hub.broadcast(snapshot), loop)
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning("Broadcast did not complete within %.1fs", timeout)

    return emit
