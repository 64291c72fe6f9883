"""Terminal viewer for a Marlin node's snapshot stream."""
from __future__ import annotations

from .connector import TelemetryConnector
from .render import TerminalRenderer, render_frame
from .session import ViewerSession, supervise_connection
from .state import AXES, Baseline, Frame, RollingWindow, ViewerState

__all__ = [
    "AXES",
    "Baseline",
    "Frame",
    "RollingWindow",
    "TelemetryConnector",
    "TerminalRenderer",
    "ViewerSession",
    "ViewerState",
    "render_frame",
    "supervise_connection",
]
