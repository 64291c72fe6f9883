from __future__ import annotations

import asyncio
import os

import pytest

from marlin.viewer.keys import TerminalKeyReader, decode_key, handle_key, run_input_loop
from marlin.viewer.state import ViewerState


class ScriptedReader:
    def __init__(self, keys: list[str]) -> None:
        self._keys = list(keys)

    def read_key(self, timeout: float):
        if not self._keys:
            raise EOFError
        return self._keys.pop(0)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("\x1b[D", "left"), ("\x1bOD", "left"), ("\x1b[C", "right"), ("\x1bOC", "right"), ("\x1b[A", None), ("q", None)],
)
def test_decode_key(raw, expected):
    assert decode_key(raw) == expected


def test_only_arrows_change_axis():
    state = ViewerState()
    assert handle_key(state, "x") is False
    assert state.axis == 2
    assert handle_key(state, "\x1b[C") is True
    assert state.axis == 0


def test_input_loop_applies_keys_until_input_ends():
    state = ViewerState()
    stop = asyncio.Event()
    reader = ScriptedReader(["\x1b[D", "a", "\x1b[D"])

    asyncio.run(run_input_loop(state, stop, reader, poll_seconds=0.01))

    assert state.axis == 0


def test_input_loop_exits_when_stopped():
    class IdleReader:
        def read_key(self, timeout: float):
            return None

    async def runner():
        stop = asyncio.Event()
        task = asyncio.create_task(run_input_loop(ViewerState(), stop, IdleReader(), poll_seconds=0.01))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(runner())


@pytest.mark.skipif(os.name == "nt", reason="select() on pipes is POSIX only")
def test_terminal_reader_collects_escape_sequences():
    read_fd, write_fd = os.pipe()
    try:
        with os.fdopen(read_fd, "r", closefd=False) as stream:
            reader = TerminalKeyReader(stream)
            with reader:
                os.write(write_fd, b"\x1b[Cz")
                assert reader.read_key(0.5) == "\x1b[C"
                assert reader.read_key(0.5) == "z"
                assert reader.read_key(0.01) is None
                os.close(write_fd)
                write_fd = -1
                with pytest.raises(EOFError):
                    reader.read_key(0.5)
    finally:
        os.close(read_fd)
        if write_fd >= 0:
            os.close(write_fd)
