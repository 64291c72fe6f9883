"""Multi-rate sensor sampler.

The sampler runs on its own thread so blocking I2C transfers never stall the
event loop. Each tick reads the accelerometer; every ``slow_divisor`` ticks it
also reads the climate, air quality and ADC sensors. A tick that produced at
least one value is handed to ``emit`` before the next tick starts.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Dict, Optional

from marlin.hardware.base import SensorBank
from marlin.snapshot import ADC_FIELDS, Snapshot

logger = logging.getLogger(__name__)

EmitFn = Callable[[Snapshot], None]


@dataclass
class SamplerStats:
    ticks: int = 0
    emitted: int = 0
    skipped: int = 0
    emit_errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "ticks": self.ticks,
            "emitted": self.emitted,
            "skipped": self.skipped,
            "emit_errors": self.emit_errors,
        }


class _Stopped(Exception):
    """Raised inside a tick when stop() interrupts an ADC settle wait."""


class SensorSampler:
    def __init__(
        self,
        bank: SensorBank,
        emit: EmitFn,
        *,
        interval_seconds: float = 0.01,
        slow_divisor: int = 100,
        adc_settle_seconds: float = 0.01,
    ) -> None:
        self._bank = bank
        self._emit = emit
        self._interval = max(float(interval_seconds), 0.0)
        self._slow_divisor = max(int(slow_divisor), 1)
        self._settle = max(float(adc_settle_seconds), 0.0)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._stats = SamplerStats()
        self._stats_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="sensor-sampler", daemon=True)
        self._thread.start()
        logger.info(
            "Sampler started (period %.3fs, slow group every %s ticks)", self._interval, self._slow_divisor
        )

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Sampler thread did not exit within %.1fs", timeout)
        self._thread = None

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return self._stats.as_dict()

    def is_slow_tick(self, tick: int) -> bool:
        return tick % self._slow_divisor == 0

    def sample(self, tick: int) -> Snapshot:
        """Read the sensors due on ``tick`` and build its snapshot."""

        values: Dict[str, float] = {}
        self._read_acceleration(values)
        if self.is_slow_tick(tick):
            self._read_climate(values)
            self._read_air_quality(values)
            self._read_adc(values)
        return Snapshot(**values)

    def _run(self) -> None:
        tick = 0
        while not self._stop.is_set():
            tick += 1
            try:
                snapshot = self.sample(tick)
            except _Stopped:
                break
            with self._stats_lock:
                self._stats.ticks += 1
            if snapshot.is_empty():
                with self._stats_lock:
                    self._stats.skipped += 1
            elif not self._stop.is_set():
                try:
                    self._emit(snapshot)
                except Exception:
                    logger.exception("Snapshot emit failed")
                    with self._stats_lock:
                        self._stats.emit_errors += 1
                else:
                    with self._stats_lock:
                        self._stats.emitted += 1
            self._stop.wait(timeout=self._interval)
        logger.info("Sampler stopped after %s ticks", tick)

    def _read_acceleration(self, values: Dict[str, float]) -> None:
        imu = self._bank.imu
        if imu is None:
            return
        try:
            reading = imu.read()
        except Exception as exc:
            logger.debug("Accelerometer read failed: %s", exc)
            return
        if reading is None:
            return
        values["acceleration_x"] = float(reading.x)
        values["acceleration_y"] = float(reading.y)
        values["acceleration_z"] = float(reading.z)

    def _read_climate(self, values: Dict[str, float]) -> None:
        sensor = self._bank.climate
        if sensor is None:
            return
        try:
            reading = sensor.read()
        except Exception as exc:
            logger.debug("Temperature/humidity read failed: %s", exc)
            return
        if reading is None:
            return
        _put(values, "temperature", reading.temperature)
        _put(values, "humidity", reading.humidity)

    def _read_air_quality(self, values: Dict[str, float]) -> None:
        sensor = self._bank.air_quality
        if sensor is None:
            return
        try:
            reading = sensor.read()
        except Exception as exc:
            logger.debug("Air quality read failed: %s", exc)
            return
        if reading is None:
            return
        _put(values, "tvoc", reading.tvoc)
        _put(values, "co2", reading.co2)

    def _read_adc(self, values: Dict[str, float]) -> None:
        adc = self._bank.adc
        if adc is None:
            return
        channels = min(int(adc.channel_count), len(ADC_FIELDS))
        for channel in range(channels):
            try:
                adc.select_channel(channel)
            except Exception as exc:
                logger.debug("ADC channel %s select failed: %s", channel, exc)
                continue
            if self._settle and self._stop.wait(timeout=self._settle):
                raise _Stopped()
            try:
                volts = adc.read_volts()
            except Exception as exc:
                logger.debug("ADC channel %s read failed: %s", channel, exc)
                continue
            _put(values, ADC_FIELDS[channel], volts)


def _put(values: Dict[str, float], name: str, value: Optional[float]) -> None:
    if value is None:
        return
    values[name] = float(value)
