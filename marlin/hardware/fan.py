"""Enclosure fan on a GPIO output."""
from __future__ import annotations

import logging
import threading
from typing import Protocol

from marlin.config import FanSettings
from marlin.errors import MarlinError

logger = logging.getLogger(__name__)


class FanOutput(Protocol):
    backend: str

    @property
    def is_on(self) -> bool:
        ...

    def set(self, on: bool) -> None:
        ...

    def close(self) -> None:
        ...


class GpioFanOutput:
    """Fan driven through gpiozero's OutputDevice (active high)."""

    backend = "gpiozero"

    def __init__(self, bcm_pin: int, *, initial_on: bool = False) -> None:
        try:
            from gpiozero import OutputDevice
        except Exception as exc:  # pragma: no cover - depends on runtime deps
            raise MarlinError("gpiozero is required to drive the fan output") from exc
        try:
            self._device = OutputDevice(int(bcm_pin), active_high=True, initial_value=bool(initial_on))
        except Exception as exc:
            raise MarlinError(f"Unable to claim GPIO{bcm_pin} for the fan: {exc}") from exc
        self.pin = int(bcm_pin)
        self._lock = threading.Lock()

    @property
    def is_on(self) -> bool:
        return bool(self._device.value)

    def set(self, on: bool) -> None:
        with self._lock:
            if on:
                self._device.on()
            else:
                self._device.off()

    def close(self) -> None:
        self._device.close()


class NullFanOutput:
    """Stand-in used when GPIO is disabled or unavailable; remembers the requested state."""

    backend = "none"

    def __init__(self, *, initial_on: bool = False) -> None:
        self._on = bool(initial_on)

    @property
    def is_on(self) -> bool:
        return self._on

    def set(self, on: bool) -> None:
        self._on = bool(on)

    def close(self) -> None:
        return


def build_fan_output(settings: FanSettings, *, simulated: bool = False) -> FanOutput:
    if not settings.enabled or simulated:
        return NullFanOutput(initial_on=settings.initial_on)
    try:
        fan = GpioFanOutput(settings.bcm_pin, initial_on=settings.initial_on)
    except MarlinError as exc:
        logger.warning("Fan output unavailable (%s); fan control disabled", exc)
        return NullFanOutput(initial_on=settings.initial_on)
    logger.info("Fan on GPIO%s is %s", settings.bcm_pin, "on" if fan.is_on else "off")
    return fan
