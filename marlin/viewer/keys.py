"""Arrow-key input for switching the charted axis."""
from __future__ import annotations

import asyncio
import logging
import os
import select
import sys
from typing import Optional, Protocol, TextIO

from marlin.viewer.state import ViewerState

logger = logging.getLogger(__name__)

try:  # pragma: no cover - POSIX only
    import termios
    import tty
except ImportError:  # pragma: no cover
    termios = None  # type: ignore[assignment]
    tty = None  # type: ignore[assignment]

KEY_LEFT = "left"
KEY_RIGHT = "right"

_SEQUENCES = {
    "\x1b[D": KEY_LEFT,
    "\x1bOD": KEY_LEFT,
    "\x1b[C": KEY_RIGHT,
    "\x1bOC": KEY_RIGHT,
}


def decode_key(raw: str) -> Optional[str]:
    return _SEQUENCES.get(raw)


class KeyReader(Protocol):
    def read_key(self, timeout: float) -> Optional[str]:
        """Return one raw keystroke, ``None`` on timeout; raise EOFError when input ends."""
        ...


class TerminalKeyReader:
    """Reads keystrokes from a TTY in cbreak mode.

    Arrow keys arrive as three-byte escape sequences; the bytes following ESC
    are collected with a short grace period so a lone ESC is still returned.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._fd: Optional[int] = None
        self._saved = None

    def __enter__(self) -> "TerminalKeyReader":
        try:
            fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            return self
        self._fd = fd
        if termios is not None and os.isatty(fd):
            self._saved = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        return self

    def __exit__(self, *exc) -> None:
        self.restore()

    def restore(self) -> None:
        if self._saved is not None and self._fd is not None and termios is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def _read_char(self) -> str:
        if self._fd is None:
            raise EOFError("stdin is not readable")
        data = os.read(self._fd, 1)
        if not data:
            raise EOFError("end of input")
        return data.decode("utf-8", errors="ignore")

    def _ready(self, timeout: float) -> bool:
        if self._fd is None:
            raise EOFError("stdin is not readable")
        readable, _, _ = select.select([self._fd], [], [], timeout)
        return bool(readable)

    def read_key(self, timeout: float) -> Optional[str]:
        if not self._ready(timeout):
            return None
        key = self._read_char()
        if key != "\x1b":
            return key
        for _ in range(2):
            if not self._ready(0.05):
                break
            key += self._read_char()
        return key


def handle_key(state: ViewerState, raw: str) -> bool:
    key = decode_key(raw)
    if key == KEY_LEFT:
        state.cycle_axis(-1)
    elif key == KEY_RIGHT:
        state.cycle_axis(+1)
    else:
        return False
    return True


async def run_input_loop(
    state: ViewerState,
    stop: asyncio.Event,
    reader: KeyReader,
    *,
    poll_seconds: float = 0.1,
) -> None:
    """Apply arrow keys to ``state`` until ``stop`` is set or input ends.

    Blocking reads happen on a worker thread with a short timeout so the loop
    notices ``stop`` promptly.
    """

    while not stop.is_set():
        try:
            raw = await asyncio.to_thread(reader.read_key, poll_seconds)
        except EOFError:
            logger.info("Keyboard input closed; axis switching disabled")
            return
        if raw and handle_key(state, raw):
            logger.debug("Axis switched to %s", state.axis)
