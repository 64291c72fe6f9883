"""ScioSense ENS160 digital metal-oxide gas sensor."""
from __future__ import annotations

import time

from marlin.errors import SensorReadError, SensorUnavailableError
from marlin.hardware.base import AirQualityReading
from marlin.hardware.i2c import I2cDevice

ENS160_PART_ID = 0x0160

REG_PART_ID = 0x00
REG_OPMODE = 0x10
REG_DATA_STATUS = 0x20
REG_DATA_TVOC = 0x22
REG_DATA_ECO2 = 0x24

OPMODE_STANDARD = 0x02
STATUS_NEWDAT = 0x02


class Ens160:
    def __init__(self, device: I2cDevice) -> None:
        self._dev = device
        try:
            raw = self._dev.read_block(REG_PART_ID, 2)
            part_id = raw[0] | (raw[1] << 8)
            if part_id != ENS160_PART_ID:
                raise SensorUnavailableError(f"ENS160 part id mismatch: expected 0x0160, got 0x{part_id:04x}")
            self._dev.write_u8(REG_OPMODE, OPMODE_STANDARD)
            time.sleep(0.01)
        except SensorReadError as exc:
            raise SensorUnavailableError(f"ENS160 not responding at 0x{device.address:02x}") from exc

    def read(self) -> AirQualityReading | None:
        status = self._dev.read_u8(REG_DATA_STATUS)
        if not status & STATUS_NEWDAT:
            return None
        tvoc = self._dev.read_block(REG_DATA_TVOC, 2)
        eco2 = self._dev.read_block(REG_DATA_ECO2, 2)
        tvoc_ppb = tvoc[0] | (tvoc[1] << 8)
        eco2_ppm = eco2[0] | (eco2[1] << 8)
        return AirQualityReading(tvoc=tvoc_ppb / 1000.0, co2=float(eco2_ppm))
