"""Viewer lifecycle: connect, calibrate, then render until interrupted."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import Optional, TextIO

from websockets.exceptions import WebSocketException

from marlin.config import ViewerSettings
from marlin.viewer.connector import TelemetryConnector
from marlin.viewer.keys import KeyReader, TerminalKeyReader, run_input_loop
from marlin.viewer.render import CLEAR_SCREEN, HIDE_CURSOR, SHOW_CURSOR, TerminalRenderer
from marlin.viewer.state import ViewerState

logger = logging.getLogger(__name__)

CONNECT_ERRORS = (OSError, WebSocketException, asyncio.TimeoutError)


async def _sleep_unless_stopped(stop: asyncio.Event, seconds: float) -> bool:
    """Wait up to ``seconds``; True when ``stop`` was set meanwhile."""

    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


async def supervise_connection(
    connector: TelemetryConnector,
    stop: asyncio.Event,
    *,
    poll_seconds: float = 0.1,
    backoff_seconds: float = 2.0,
) -> None:
    """Reconnect whenever the connector reports the link down, until ``stop`` is set."""

    while not stop.is_set():
        if not connector.is_connected:
            logger.warning("Connection to %s lost; reconnecting", connector.url)
            try:
                await connector.connect()
            except CONNECT_ERRORS as exc:
                logger.warning("Reconnect to %s failed: %s", connector.url, exc)
                if await _sleep_unless_stopped(stop, backoff_seconds):
                    return
                continue
        if await _sleep_unless_stopped(stop, poll_seconds):
            return


class ViewerSession:
    def __init__(
        self,
        settings: ViewerSettings,
        *,
        connector: Optional[TelemetryConnector] = None,
        key_reader: Optional[KeyReader] = None,
        stream: TextIO | None = None,
        intro_seconds: float = 1.0,
        install_signal_handlers: bool = True,
    ) -> None:
        self.settings = settings
        self.state = ViewerState(capacity=settings.window_capacity)
        self.connector = connector or TelemetryConnector(
            settings.host,
            settings.port,
            settings.ws_path,
            open_timeout=settings.open_timeout_seconds,
        )
        self.connector.on_snapshot(self.state.on_snapshot)
        self.stop = asyncio.Event()
        self._key_reader = key_reader
        self._stream = stream or sys.stdout
        self._intro_seconds = float(intro_seconds)
        self._install_signals = install_signal_handlers

    def _say(self, text: str) -> None:
        self._stream.write(text + "\n")
        self._stream.flush()

    def _install_signal_handlers(self) -> list[int]:
        if not self._install_signals:
            return []
        loop = asyncio.get_running_loop()
        installed = []
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.stop.set)
            except (NotImplementedError, RuntimeError):
                continue
            installed.append(signum)
        return installed

    async def connect_until_ready(self) -> bool:
        self._say(f"Connecting to Marlin at {self.connector.host}:{self.connector.port}...")
        while not self.stop.is_set():
            try:
                await self.connector.connect()
            except CONNECT_ERRORS as exc:
                self._say(f"Connection failed: {exc}. Retrying in {self.settings.reconnect_backoff_seconds:g}s...")
                if await _sleep_unless_stopped(self.stop, self.settings.reconnect_backoff_seconds):
                    return False
                continue
            self._say("Connected!")
            return True
        return False

    async def calibrate(self) -> bool:
        self._say(f"Collecting baseline ({self.settings.baseline_seconds:g} second)...")
        if await _sleep_unless_stopped(self.stop, self.settings.baseline_seconds):
            return False
        baseline = self.state.calibrate()
        if baseline.samples:
            self._say(
                f"Baseline collected - X: {baseline.x:.3f}g, Y: {baseline.y:.3f}g, Z: {baseline.z:.3f}g"
            )
        else:
            self._say("No baseline data received. Using zero baseline.")
        return True

    async def show_intro(self) -> bool:
        if await _sleep_unless_stopped(self.stop, self._intro_seconds):
            return False
        self._stream.write(CLEAR_SCREEN)
        self._say("Use ← → arrows to change axis. Press Ctrl+C to exit.")
        if await _sleep_unless_stopped(self.stop, self._intro_seconds):
            return False
        self._stream.write(CLEAR_SCREEN + HIDE_CURSOR)
        self._stream.flush()
        return True

    async def _run_loops(self, reader: KeyReader) -> None:
        renderer = TerminalRenderer(
            self.state,
            interval_seconds=self.settings.frame_interval_seconds,
            height=self.settings.chart_height,
            margin=self.settings.chart_margin,
            stream=self._stream,
            is_connected=lambda: self.connector.is_connected,
        )
        tasks = [
            asyncio.create_task(renderer.run(self.stop), name="viewer-render"),
            asyncio.create_task(
                run_input_loop(self.state, self.stop, reader, poll_seconds=self.settings.reconnect_poll_seconds),
                name="viewer-input",
            ),
            asyncio.create_task(
                supervise_connection(
                    self.connector,
                    self.stop,
                    poll_seconds=self.settings.reconnect_poll_seconds,
                    backoff_seconds=self.settings.reconnect_backoff_seconds,
                ),
                name="viewer-reconnect",
            ),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # A failed loop takes its siblings down with it.
            self.stop.set()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def run(self) -> int:
        signals = self._install_signal_handlers()
        try:
            if not await self.connect_until_ready():
                return 0
            if not await self.calibrate():
                return 0
            if not await self.show_intro():
                return 0
            if self._key_reader is not None:
                await self._run_loops(self._key_reader)
            else:
                with TerminalKeyReader() as reader:
                    await self._run_loops(reader)
            return 0
        except Exception as exc:
            logger.exception("Viewer failed")
            self._say(f"Error: {exc}")
            return 1
        finally:
            self.stop.set()
            await self.connector.disconnect(self.settings.disconnect_timeout_seconds)
            self._stream.write(SHOW_CURSOR)
            self._stream.flush()
            if signals:
                loop = asyncio.get_running_loop()
                for signum in signals:
                    with contextlib.suppress(Exception):
                        loop.remove_signal_handler(signum)
