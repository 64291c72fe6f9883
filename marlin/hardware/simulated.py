"""Simulated sensor bank for bench runs without the sensor HAT."""
from __future__ import annotations

import math
import random
import time
from typing import Optional

from marlin import build_info
from marlin.config import SimulationSettings
from marlin.hardware.base import (
    AccelerationReading,
    AirQualityReading,
    ClimateReading,
    SensorBank,
)

SIMULATED_CHANNELS = ("imu", "climate", "air_quality", "adc")


class _Clock:
    def __init__(self) -> None:
        self._started = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self._started


class SimulatedAccelerometer:
    """Board at rest, Z up, with a slow wobble plus gaussian noise."""

    def __init__(self, rng: random.Random, clock: _Clock, *, noise_g: float) -> None:
        self._rng = rng
        self._clock = clock
        self._noise = noise_g

    def read(self) -> AccelerationReading:
        t = self._clock.elapsed()
        wobble = 0.01 * math.sin(2 * math.pi * t / 7.0)
        return AccelerationReading(
            x=wobble + self._rng.gauss(0.0, self._noise),
            y=-wobble / 2 + self._rng.gauss(0.0, self._noise),
            z=1.0 + self._rng.gauss(0.0, self._noise),
        )


class SimulatedClimate:
    def __init__(self, rng: random.Random, clock: _Clock) -> None:
        self._rng = rng
        self._clock = clock

    def read(self) -> ClimateReading:
        t = self._clock.elapsed()
        temperature = 22.0 + 1.5 * math.sin(2 * math.pi * t / 600.0) + self._rng.gauss(0.0, 0.05)
        humidity = 45.0 + 5.0 * math.sin(2 * math.pi * t / 900.0) + self._rng.gauss(0.0, 0.2)
        return ClimateReading(temperature=temperature, humidity=max(0.0, min(humidity, 100.0)))


class SimulatedAirQuality:
    def __init__(self, rng: random.Random) -> None:
        self._rng = rng

    def read(self) -> AirQualityReading:
        return AirQualityReading(
            tvoc=max(0.0, 0.12 + self._rng.gauss(0.0, 0.01)),
            co2=float(max(400, int(520 + self._rng.gauss(0.0, 15.0)))),
        )


class SimulatedAdc:
    def __init__(self, rng: random.Random, *, channels: int = 4) -> None:
        self._rng = rng
        self.channel_count = channels
        self._channel = 0
        self._levels = [0.5 + 1.0 * idx for idx in range(channels)]

    def select_channel(self, channel: int) -> None:
        channel = int(channel)
        if channel < 0 or channel >= self.channel_count:
            raise ValueError(f"ADC channel must be 0-{self.channel_count - 1}, got {channel}")
        self._channel = channel

    def read_volts(self) -> float:
        return self._levels[self._channel] + self._rng.gauss(0.0, 0.005)


def build_simulated_bank(simulation: SimulationSettings, *, adc_channels: int = 4) -> SensorBank:
    if build_info.BUILD_FLAVOR == "prod":
        raise RuntimeError("Simulation is not allowed in production builds")
    rng = random.Random(simulation.seed if simulation.seed is not None else 1)
    clock = _Clock()
    offline = {name.strip().lower() for name in simulation.offline_channels}
    unknown = offline - set(SIMULATED_CHANNELS)
    if unknown:
        raise ValueError(f"Unknown simulated channels: {sorted(unknown)}")

    def _maybe(name: str, sensor: object) -> Optional[object]:
        return None if name in offline else sensor

    return SensorBank(
        imu=_maybe("imu", SimulatedAccelerometer(rng, clock, noise_g=simulation.noise_g)),
        climate=_maybe("climate", SimulatedClimate(rng, clock)),
        air_quality=_maybe("air_quality", SimulatedAirQuality(rng)),
        adc=_maybe("adc", SimulatedAdc(rng, channels=adc_channels)),
        backend="simulated",
    )
