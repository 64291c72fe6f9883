"""Sensor drivers and the GPIO fan output."""
from __future__ import annotations

from .bank import build_sensor_bank
from .base import (
    AccelerationReading,
    Accelerometer,
    AirQualityReading,
    AirQualitySensor,
    ClimateReading,
    ClimateSensor,
    MultiChannelAdc,
    SensorBank,
)
from .fan import FanOutput, GpioFanOutput, NullFanOutput, build_fan_output
from .simulated import build_simulated_bank

__all__ = [
    "AccelerationReading",
    "Accelerometer",
    "AirQualityReading",
    "AirQualitySensor",
    "ClimateReading",
    "ClimateSensor",
    "MultiChannelAdc",
    "SensorBank",
    "FanOutput",
    "GpioFanOutput",
    "NullFanOutput",
    "build_fan_output",
    "build_sensor_bank",
    "build_simulated_bank",
]
