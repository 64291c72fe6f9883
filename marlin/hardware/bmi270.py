"""Bosch BMI270 IMU, accelerometer only.

The BMI270 boots with its feature engine unconfigured. Bosch ships the
feature-engine firmware as a binary blob; when ``config_path`` points at it
the blob is uploaded during init, otherwise the accelerometer is enabled
directly, which is enough for raw acceleration data on the boards we use.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from marlin.errors import SensorReadError, SensorUnavailableError
from marlin.hardware.base import AccelerationReading
from marlin.hardware.i2c import I2cDevice, to_int16

logger = logging.getLogger(__name__)

BMI270_CHIP_ID = 0x24

REG_CHIP_ID = 0x00
REG_ACC_DATA = 0x0C
REG_INTERNAL_STATUS = 0x21
REG_ACC_CONF = 0x40
REG_ACC_RANGE = 0x41
REG_INIT_CTRL = 0x59
REG_INIT_ADDR_0 = 0x5B
REG_INIT_ADDR_1 = 0x5C
REG_INIT_DATA = 0x5E
REG_PWR_CONF = 0x7C
REG_PWR_CTRL = 0x7D
REG_CMD = 0x7E

CMD_SOFT_RESET = 0xB6
ACC_CONF_100HZ_NORMAL = 0xA8
ACC_RANGE_4G = 0x01
LSB_PER_G = 8192.0
INIT_CHUNK_BYTES = 32


class Bmi270:
    def __init__(self, device: I2cDevice, *, config_path: Optional[str] = None) -> None:
        self._dev = device
        try:
            chip_id = self._dev.read_u8(REG_CHIP_ID)
        except SensorReadError as exc:
            raise SensorUnavailableError(f"BMI270 not responding at 0x{device.address:02x}") from exc
        if chip_id != BMI270_CHIP_ID:
            raise SensorUnavailableError(f"BMI270 chip id mismatch: expected 0x24, got 0x{chip_id:02x}")
        try:
            self._init(config_path)
        except SensorReadError as exc:
            raise SensorUnavailableError(f"BMI270 init failed: {exc}") from exc

    def _init(self, config_path: Optional[str]) -> None:
        self._dev.write_u8(REG_CMD, CMD_SOFT_RESET)
        time.sleep(0.002)
        self._dev.write_u8(REG_PWR_CONF, 0x00)  # advanced power save off
        time.sleep(0.001)
        if config_path:
            try:
                blob = Path(config_path).read_bytes()
            except OSError as exc:
                raise SensorUnavailableError(f"BMI270 config blob unreadable: {exc}") from exc
            self._upload_config(blob)
        else:
            logger.info("BMI270 feature config not provided; using raw accelerometer mode")
        self._dev.write_u8(REG_PWR_CTRL, 0x04)  # accelerometer on
        self._dev.write_u8(REG_ACC_CONF, ACC_CONF_100HZ_NORMAL)
        self._dev.write_u8(REG_ACC_RANGE, ACC_RANGE_4G)
        time.sleep(0.002)

    def _upload_config(self, blob: bytes) -> None:
        self._dev.write_u8(REG_INIT_CTRL, 0x00)
        for offset in range(0, len(blob), INIT_CHUNK_BYTES):
            word_addr = offset // 2
            self._dev.write_u8(REG_INIT_ADDR_0, word_addr & 0x0F)
            self._dev.write_u8(REG_INIT_ADDR_1, (word_addr >> 4) & 0xFF)
            self._dev.write_block(REG_INIT_DATA, blob[offset : offset + INIT_CHUNK_BYTES])
        self._dev.write_u8(REG_INIT_CTRL, 0x01)
        time.sleep(0.02)
        status = self._dev.read_u8(REG_INTERNAL_STATUS) & 0x0F
        if status != 0x01:
            raise SensorUnavailableError(f"BMI270 config upload rejected (internal status 0x{status:02x})")

    def read(self) -> AccelerationReading | None:
        raw = self._dev.read_block(REG_ACC_DATA, 6)
        x = to_int16(raw[0] | (raw[1] << 8))
        y = to_int16(raw[2] | (raw[3] << 8))
        z = to_int16(raw[4] | (raw[5] << 8))
        return AccelerationReading(x=x / LSB_PER_G, y=y / LSB_PER_G, z=z / LSB_PER_G)
