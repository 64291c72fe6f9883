"""TI ADS1115 16-bit ADC in single-shot mode.

Single-shot is used rather than continuous mode: continuous conversion keeps
sampling the previously selected input, which makes channel switching
unreliable. Callers must wait for the input to settle after
``select_channel`` before calling ``read_volts``.
"""
from __future__ import annotations

import time

from marlin.errors import SensorReadError, SensorUnavailableError
from marlin.hardware.i2c import I2cDevice, to_int16

REG_CONVERSION = 0x00
REG_CONFIG = 0x01

CONFIG_OS_SINGLE = 0x8000
CONFIG_MUX_SINGLE = (0x4000, 0x5000, 0x6000, 0x7000)  # AINx vs GND
CONFIG_PGA_6_144V = 0x0000
CONFIG_MODE_SINGLE = 0x0100
CONFIG_DR_128SPS = 0x0080
CONFIG_COMP_DISABLE = 0x0003

FULL_SCALE_VOLTS = 6.144
CONVERSION_TIMEOUT_SECONDS = 0.05


class Ads1115:
    channel_count = 4

    def __init__(self, device: I2cDevice, *, channels: int = 4) -> None:
        self._dev = device
        self.channel_count = max(1, min(int(channels), 4))
        self._channel = 0
        try:
            self._dev.read_block(REG_CONFIG, 2)
        except SensorReadError as exc:
            raise SensorUnavailableError(f"ADS1115 not responding at 0x{device.address:02x}") from exc

    def select_channel(self, channel: int) -> None:
        channel = int(channel)
        if channel < 0 or channel >= self.channel_count:
            raise ValueError(f"ADS1115 channel must be 0-{self.channel_count - 1}, got {channel}")
        self._channel = channel

    def read_volts(self) -> float | None:
        config = (
            CONFIG_OS_SINGLE
            | CONFIG_MUX_SINGLE[self._channel]
            | CONFIG_PGA_6_144V
            | CONFIG_MODE_SINGLE
            | CONFIG_DR_128SPS
            | CONFIG_COMP_DISABLE
        )
        self._dev.write_block(REG_CONFIG, [(config >> 8) & 0xFF, config & 0xFF])
        deadline = time.monotonic() + CONVERSION_TIMEOUT_SECONDS
        while True:
            status = self._dev.read_block(REG_CONFIG, 2)
            if status[0] & 0x80:
                break
            if time.monotonic() >= deadline:
                return None
            time.sleep(0.001)
        raw = self._dev.read_block(REG_CONVERSION, 2)
        value = to_int16((raw[0] << 8) | raw[1])
        return value * FULL_SCALE_VOLTS / 32768.0
