"""ASAIR AHT10 temperature/humidity sensor."""
from __future__ import annotations

import time

from marlin.errors import SensorReadError, SensorUnavailableError
from marlin.hardware.base import ClimateReading
from marlin.hardware.i2c import I2cDevice

CMD_INIT = (0xE1, 0x08, 0x00)
CMD_MEASURE = (0xAC, 0x33, 0x00)
STATUS_BUSY = 0x80
MEASURE_SECONDS = 0.08


class Aht10:
    def __init__(self, device: I2cDevice) -> None:
        self._dev = device
        try:
            self._dev.write_raw(CMD_INIT)
            time.sleep(0.02)
            # An initial measurement proves the part is actually on the bus.
            self.read()
        except SensorReadError as exc:
            raise SensorUnavailableError(f"AHT10 not responding at 0x{device.address:02x}") from exc

    def read(self) -> ClimateReading | None:
        self._dev.write_raw(CMD_MEASURE)
        time.sleep(MEASURE_SECONDS)
        data = self._dev.read_raw(6)
        if data[0] & STATUS_BUSY:
            return None
        raw_humidity = (data[1] << 12) | (data[2] << 4) | (data[3] >> 4)
        raw_temperature = ((data[3] & 0x0F) << 16) | (data[4] << 8) | data[5]
        humidity = raw_humidity * 100.0 / 0x100000
        temperature = raw_temperature * 200.0 / 0x100000 - 50.0
        return ClimateReading(temperature=temperature, humidity=humidity)
