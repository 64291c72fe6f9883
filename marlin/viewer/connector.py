"""Viewer-side WebSocket client delivering decoded snapshots to a callback."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from marlin.snapshot import Snapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Snapshot], None]


class TelemetryConnector:
    """Owns one connection to a node at a time.

    ``connect`` opens the socket and starts a receive task; the task ends when
    the peer closes or the transport fails and is never restarted here.
    Reconnection belongs to the caller, which polls ``is_connected``.
    """

    def __init__(
        self,
        host: str,
        port: int = 5000,
        path: str = "/ws",
        *,
        on_snapshot: Optional[SnapshotCallback] = None,
        open_timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.path = path if path.startswith("/") else f"/{path}"
        self._callback = on_snapshot
        self._open_timeout = float(open_timeout)
        self._ws: ClientConnection | None = None
        self._receiver: asyncio.Task | None = None
        self.received = 0
        self.dropped = 0

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.path}"

    @property
    def is_connected(self) -> bool:
        return (
            self._ws is not None
            and self._ws.state is State.OPEN
            and self._receiver is not None
            and not self._receiver.done()
        )

    def on_snapshot(self, callback: Optional[SnapshotCallback]) -> None:
        self._callback = callback

    async def connect(self) -> None:
        if self.is_connected:
            return
        await self._discard()
        logger.info("Connecting to %s", self.url)
        self._ws = await connect(self.url, open_timeout=self._open_timeout)
        self._receiver = asyncio.create_task(self._receive(self._ws), name="marlin-receiver")
        logger.info("Connected to %s", self.url)

    async def disconnect(self, timeout: float = 2.0) -> None:
        ws, receiver = self._ws, self._receiver
        if ws is not None and ws.state is State.OPEN:
            try:
                await asyncio.wait_for(ws.close(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Close handshake with %s timed out after %.1fs", self.url, timeout)
            except Exception as exc:
                logger.debug("Close failed: %s", exc)
        if receiver is not None and not receiver.done():
            receiver.cancel()
            done, _ = await asyncio.wait({receiver}, timeout=timeout)
            if not done:
                logger.warning("Receive loop did not stop within %.1fs", timeout)
        self._ws = None
        self._receiver = None

    async def _discard(self) -> None:
        # Drop a dead connection left behind by a previous session.
        if self._ws is None and self._receiver is None:
            return
        await self.disconnect(timeout=self._open_timeout)

    async def _receive(self, ws: ClientConnection) -> None:
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    continue
                snapshot = Snapshot.from_wire(message)
                if snapshot is None or snapshot.is_empty():
                    self.dropped += 1
                    continue
                self.received += 1
                callback = self._callback
                if callback is None:
                    continue
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception("Snapshot callback failed")
        except ConnectionClosed as exc:
            logger.info("Connection to %s closed: %s", self.url, exc)
        except OSError as exc:
            logger.info("Connection to %s lost: %s", self.url, exc)
        else:
            logger.info("Connection to %s closed by server", self.url)
