"""Sensor abstractions used by the sampler."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccelerationReading:
    """Acceleration in g."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class ClimateReading:
    temperature: Optional[float] = None  # degrees C
    humidity: Optional[float] = None  # percent RH


@dataclass(frozen=True)
class AirQualityReading:
    tvoc: Optional[float] = None  # ppm
    co2: Optional[float] = None  # ppm (equivalent CO2)


class Accelerometer(Protocol):
    def read(self) -> AccelerationReading | None:
        ...


class ClimateSensor(Protocol):
    def read(self) -> ClimateReading | None:
        ...


class AirQualitySensor(Protocol):
    def read(self) -> AirQualityReading | None:
        ...


class MultiChannelAdc(Protocol):
    """Single-shot ADC that needs a settle delay after switching channel."""

    channel_count: int

    def select_channel(self, channel: int) -> None:
        ...

    def read_volts(self) -> float | None:
        ...


@dataclass
class SensorBank:
    """Sensors constructed at startup; ``None`` means permanently unavailable."""

    imu: Optional[Accelerometer] = None
    climate: Optional[ClimateSensor] = None
    air_quality: Optional[AirQualitySensor] = None
    adc: Optional[MultiChannelAdc] = None
    backend: str = "i2c"
    bus: Any = None

    def availability(self) -> Dict[str, bool]:
        return {
            "imu": self.imu is not None,
            "climate": self.climate is not None,
            "air_quality": self.air_quality is not None,
            "adc": self.adc is not None,
        }

    def close(self) -> None:
        for sensor in (self.imu, self.climate, self.air_quality, self.adc):
            close_fn = getattr(sensor, "close", None)
            if callable(close_fn):
                try:
                    close_fn()
                except Exception as exc:
                    logger.debug("Sensor close failed: %s", exc)
        if self.bus is not None:
            try:
                self.bus.close()
            except Exception as exc:
                logger.debug("I2C bus close failed: %s", exc)
            self.bus = None
