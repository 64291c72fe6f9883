"""Text rendering of the viewer state and the fixed-rate paint loop."""
from __future__ import annotations

import asyncio
import logging
import shutil
import sys
from typing import List, Optional, Sequence, TextIO

from marlin.snapshot import ADC_FIELDS
from marlin.viewer.state import AXES, Frame, ViewerState

logger = logging.getLogger(__name__)

TITLE = "Marlin Sensor Monitor"
BAR = "█"
ZERO = "─"
MIN_RANGE = 0.1
ZERO_BAND = 0.05
MIN_WIDTH = 20

CURSOR_HOME = "\x1b[H"
CLEAR_SCREEN = "\x1b[2J\x1b[H"
CLEAR_TO_END = "\x1b[J"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"


def _fmt(value: Optional[float], digits: int) -> str:
    return "N/A" if value is None else f"{value:.{digits}f}"


def _boxed(text: str, width: int) -> str:
    inner = width - 2
    return "│" + text[:inner].ljust(inner) + "│"


def header_lines(frame: Frame, width: int) -> List[str]:
    latched = frame.latched
    adc = ",".join(_fmt(latched.get(name), 3) for name in ADC_FIELDS)
    readings = (
        f" Temperature: {_fmt(latched.get('temperature'), 1)}°C"
        f"  Humidity: {_fmt(latched.get('humidity'), 1)}%"
        f"  TVOC: {_fmt(latched.get('tvoc'), 1)}ppm"
        f"  CO2: {_fmt(latched.get('co2'), 1)}ppm"
        f"  ADC: [{adc}]V"
    )
    caption = f" Acceleration {frame.axis_name}-axis Deviation (g) - Last {frame.capacity} samples"
    rule = "─" * (width - 2)
    return [
        "┌" + rule + "┐",
        _boxed(f" {TITLE}", width),
        "├" + rule + "┤",
        _boxed(readings, width),
        "├" + rule + "┤",
        _boxed(caption, width),
        "└" + rule + "┘",
    ]


def chart_scale(window: Sequence[float]) -> float:
    largest = max(abs(max(window)), abs(min(window)))
    return largest if largest > 0 else MIN_RANGE


def chart_lines(window: Sequence[float], width: int, *, height: int = 15, margin: int = 4) -> List[str]:
    """Two-sided bar chart of ``window``, newest sample in the rightmost column."""

    scale = chart_scale(window)
    columns = max(0, min(width - margin, len(window)))
    visible = list(window[len(window) - columns :]) if columns else []
    lines: List[str] = []
    for row in range(height - 1, -1, -1):
        value = scale * (2.0 * row / (height - 1) - 1.0)
        cells = []
        for deviation in visible:
            if abs(value) < scale * ZERO_BAND:
                cells.append(ZERO)
            elif 0 <= value <= deviation or deviation <= value <= 0:
                cells.append(BAR)
            else:
                cells.append(" ")
        lines.append("  " + "".join(cells))
    lines.append("  " + "─" * columns)
    lines.append(f"  Scale: -{scale:.3f}g to +{scale:.3f}g")
    return lines


def deviation_line(frame: Frame) -> Optional[str]:
    deviations = frame.deviations
    if not frame.calibrated or deviations is None:
        return None
    dx, dy, dz = deviations
    selected = deviations[frame.axis]
    return (
        f"  Current Deviations: X={dx:.3f}g Y={dy:.3f}g Z={dz:.3f}g"
        f" | [{AXES[frame.axis]}={selected:.3f}g]"
    )


def render_frame(
    frame: Frame,
    width: int,
    *,
    height: int = 15,
    margin: int = 4,
    connected: bool = True,
) -> List[str]:
    width = max(int(width), MIN_WIDTH)
    lines = header_lines(frame, width)
    if not connected:
        lines.append("  Connection lost. Attempting to reconnect...")
    if not frame.window:
        lines.append(f"  Waiting for {frame.axis_name}-axis data...")
        return lines
    lines.extend(chart_lines(frame.window, width, height=height, margin=margin))
    extra = deviation_line(frame)
    if extra:
        lines.append(extra)
    return lines


class TerminalRenderer:
    """Paints ``state`` at a fixed interval regardless of the data rate."""

    def __init__(
        self,
        state: ViewerState,
        *,
        interval_seconds: float = 0.05,
        height: int = 15,
        margin: int = 4,
        stream: TextIO | None = None,
        is_connected=None,
    ) -> None:
        self._state = state
        self._interval = float(interval_seconds)
        self._height = int(height)
        self._margin = int(margin)
        self._stream = stream or sys.stdout
        self._is_connected = is_connected
        self.frames = 0

    def paint(self) -> None:
        # One column short of the terminal so full-width lines never wrap.
        width = max(shutil.get_terminal_size((80, 24)).columns - 1, MIN_WIDTH)
        connected = True if self._is_connected is None else bool(self._is_connected())
        lines = render_frame(
            self._state.frame(),
            width,
            height=self._height,
            margin=self._margin,
            connected=connected,
        )
        body = "\n".join(line[:width].ljust(width) for line in lines)
        self._stream.write(CURSOR_HOME + body + "\n" + CLEAR_TO_END)
        self._stream.flush()
        self.frames += 1

    async def run(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                self.paint()
            except OSError as exc:
                logger.warning("Terminal write failed: %s", exc)
                stop.set()
                return
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
