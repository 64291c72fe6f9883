"""Construct the sensor bank from settings."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TypeVar

from marlin.config import NodeSettings
from marlin.errors import SensorUnavailableError
from marlin.hardware.aht10 import Aht10
from marlin.hardware.ads1115 import Ads1115
from marlin.hardware.base import SensorBank
from marlin.hardware.bmi270 import Bmi270
from marlin.hardware.ens160 import Ens160
from marlin.hardware.i2c import I2cDevice, open_bus
from marlin.hardware.simulated import build_simulated_bank

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_sensor_bank(settings: NodeSettings) -> SensorBank:
    """Initialize every sensor once; a sensor that fails here stays absent for the process lifetime."""

    if settings.simulation.enabled:
        logger.warning("Simulation enabled; using simulated sensors")
        return build_simulated_bank(settings.simulation, adc_channels=settings.adc_channels)

    i2c = settings.i2c
    try:
        bus = open_bus(i2c.bus)
    except SensorUnavailableError as exc:
        logger.error("I2C bus unavailable; all sensors offline: %s", exc)
        return SensorBank(backend="i2c")

    lock = threading.Lock()
    bank = SensorBank(backend="i2c", bus=bus)
    bank.imu = _init_sensor(
        "Accelerometer",
        lambda: Bmi270(I2cDevice(bus, i2c.imu_address, lock=lock), config_path=i2c.imu_config_path),
    )
    bank.climate = _init_sensor(
        "Temperature/humidity sensor",
        lambda: Aht10(I2cDevice(bus, i2c.climate_address, lock=lock)),
    )
    bank.air_quality = _init_sensor(
        "Air quality sensor",
        lambda: Ens160(I2cDevice(bus, i2c.air_quality_address, lock=lock)),
    )
    bank.adc = _init_sensor(
        "ADC",
        lambda: Ads1115(I2cDevice(bus, i2c.adc_address, lock=lock), channels=settings.adc_channels),
    )

    logger.info("Sensor bank ready: %s", bank.availability())
    return bank


def _init_sensor(label: str, factory: Callable[[], T]) -> Optional[T]:
    try:
        return factory()
    except SensorUnavailableError as exc:
        logger.error("%s init failed: %s", label, exc)
    except Exception:
        logger.exception("%s init failed", label)
    return None
