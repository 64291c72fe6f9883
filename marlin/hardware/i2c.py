"""Thin smbus2 wrapper shared by the I2C sensor drivers."""
from __future__ import annotations

import logging
import threading
from typing import Sequence

from marlin.errors import SensorReadError, SensorUnavailableError

logger = logging.getLogger(__name__)


def open_bus(bus_number: int):
    try:
        from smbus2 import SMBus
    except Exception as exc:  # pragma: no cover - depends on runtime deps
        raise SensorUnavailableError("smbus2 is required for I2C sensors") from exc
    try:
        return SMBus(int(bus_number))
    except FileNotFoundError as exc:
        raise SensorUnavailableError(
            f"/dev/i2c-{bus_number} missing; enable I2C (raspi-config → Interface Options → I2C)"
        ) from exc
    except PermissionError as exc:  # pragma: no cover - depends on service user perms
        raise SensorUnavailableError(
            f"Permission denied opening /dev/i2c-{bus_number}; add the service user to the `i2c` group"
        ) from exc
    except OSError as exc:  # pragma: no cover
        raise SensorUnavailableError(f"Unable to open /dev/i2c-{bus_number}: {exc}") from exc


class I2cDevice:
    """Register-level access to one device on a shared bus."""

    def __init__(self, bus, address: int, *, lock: threading.Lock | None = None) -> None:
        self._bus = bus
        self.address = int(address)
        self._lock = lock or threading.Lock()

    def write_u8(self, reg: int, value: int) -> None:
        with self._lock:
            self._call(self._bus.write_byte_data, self.address, reg, value & 0xFF)

    def read_u8(self, reg: int) -> int:
        with self._lock:
            return int(self._call(self._bus.read_byte_data, self.address, reg))

    def read_block(self, reg: int, length: int) -> list[int]:
        with self._lock:
            return list(self._call(self._bus.read_i2c_block_data, self.address, reg, length))

    def write_block(self, reg: int, data: Sequence[int]) -> None:
        with self._lock:
            self._call(self._bus.write_i2c_block_data, self.address, reg, list(data))

    def write_raw(self, data: Sequence[int]) -> None:
        from smbus2 import i2c_msg

        with self._lock:
            self._call(self._bus.i2c_rdwr, i2c_msg.write(self.address, list(data)))

    def read_raw(self, length: int) -> list[int]:
        from smbus2 import i2c_msg

        msg = i2c_msg.read(self.address, length)
        with self._lock:
            self._call(self._bus.i2c_rdwr, msg)
        return list(msg)

    def _call(self, fn, *args):
        try:
            return fn(*args)
        except OSError as exc:
            raise SensorReadError(f"I2C transfer to 0x{self.address:02x} failed: {exc}") from exc


def to_int16(value: int) -> int:
    return value - 0x10000 if value & 0x8000 else value
