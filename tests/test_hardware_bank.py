from __future__ import annotations

import sys
import types

import pytest

from marlin import build_info
from marlin.config import FanSettings, NodeSettings, SimulationSettings
from marlin.hardware import bank as bank_module
from marlin.hardware import build_fan_output, build_sensor_bank, build_simulated_bank
from marlin.hardware.fan import GpioFanOutput, NullFanOutput
from marlin.errors import SensorUnavailableError


def test_simulated_bank_is_repeatable_for_a_seed():
    first = build_simulated_bank(SimulationSettings(enabled=True, seed=3))
    second = build_simulated_bank(SimulationSettings(enabled=True, seed=3))
    assert first.imu.read().z == second.imu.read().z
    assert first.backend == "simulated"


def test_simulated_bank_honours_offline_channels():
    bank = build_simulated_bank(SimulationSettings(enabled=True, offline_channels=["imu", "adc"]))
    assert bank.availability() == {"imu": False, "climate": True, "air_quality": True, "adc": False}


def test_simulated_bank_rejects_unknown_channels():
    with pytest.raises(ValueError, match="Unknown simulated channels"):
        build_simulated_bank(SimulationSettings(enabled=True, offline_channels=["lidar"]))


def test_simulation_blocked_in_prod(monkeypatch):
    monkeypatch.setattr(build_info, "BUILD_FLAVOR", "prod")
    with pytest.raises(RuntimeError, match="Simulation is not allowed in production builds"):
        build_simulated_bank(SimulationSettings(enabled=True))


def test_missing_bus_leaves_every_sensor_absent(monkeypatch, caplog):
    def _no_bus(_number):
        raise SensorUnavailableError("/dev/i2c-1 missing")

    monkeypatch.setattr(bank_module, "open_bus", _no_bus)
    with caplog.at_level("ERROR"):
        bank = build_sensor_bank(NodeSettings())
    assert bank.availability() == {"imu": False, "climate": False, "air_quality": False, "adc": False}
    assert "I2C bus unavailable" in caplog.text


def test_failed_sensor_is_logged_once_and_stays_absent(monkeypatch, caplog):
    class Bus:
        closed = False

        def close(self):
            self.closed = True

    bus = Bus()

    class Broken:
        def __init__(self, *args, **kwargs):
            raise SensorUnavailableError("not responding")

    class Working:
        channel_count = 4

        def __init__(self, *args, **kwargs):
            pass

    monkeypatch.setattr(bank_module, "open_bus", lambda _number: bus)
    monkeypatch.setattr(bank_module, "Bmi270", Broken)
    monkeypatch.setattr(bank_module, "Aht10", Working)
    monkeypatch.setattr(bank_module, "Ens160", Working)
    monkeypatch.setattr(bank_module, "Ads1115", Working)
    with caplog.at_level("ERROR"):
        bank = build_sensor_bank(NodeSettings())
    assert bank.availability() == {"imu": False, "climate": True, "air_quality": True, "adc": True}
    assert caplog.text.count("Accelerometer init failed") == 1
    bank.close()
    assert bus.closed


def test_null_fan_remembers_state():
    fan = build_fan_output(FanSettings(enabled=False, initial_on=True))
    assert isinstance(fan, NullFanOutput)
    assert fan.is_on is True
    fan.set(False)
    assert fan.is_on is False


def _install_fake_gpiozero(monkeypatch, *, fail: bool = False):
    class FakeOutputDevice:
        def __init__(self, pin: int, *, active_high: bool = True, initial_value: bool = False):  # noqa: ARG002
            if fail:
                raise RuntimeError("pin busy")
            self.pin = pin
            self.value = 1 if initial_value else 0
            self.closed = False

        def on(self) -> None:
            self.value = 1

        def off(self) -> None:
            self.value = 0

        def close(self) -> None:
            self.closed = True

    gpiozero_mod = types.ModuleType("gpiozero")
    gpiozero_mod.OutputDevice = FakeOutputDevice  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "gpiozero", gpiozero_mod)


def test_gpio_fan_drives_output_device(monkeypatch):
    _install_fake_gpiozero(monkeypatch)
    fan = build_fan_output(FanSettings(bcm_pin=16, initial_on=True))
    assert isinstance(fan, GpioFanOutput)
    assert fan.is_on is True
    fan.set(False)
    assert fan.is_on is False
    assert fan.backend == "gpiozero"


def test_gpio_failure_falls_back_to_null_fan(monkeypatch):
    _install_fake_gpiozero(monkeypatch, fail=True)
    fan = build_fan_output(FanSettings(bcm_pin=16, initial_on=True))
    assert isinstance(fan, NullFanOutput)
    assert fan.is_on is True


def test_unexpected_init_errors_leave_only_that_sensor_absent(monkeypatch, caplog, tmp_path):
    class ImuBus:
        def read_byte_data(self, address, reg):
            return 0x24

        def write_byte_data(self, address, reg, value):
            pass

        def close(self):
            pass

    class Exploding:
        def __init__(self, *args, **kwargs):
            raise RuntimeError("driver bug")

    class Working:
        channel_count = 4

        def __init__(self, *args, **kwargs):
            pass

    monkeypatch.setattr("marlin.hardware.bmi270.time.sleep", lambda _s: None)
    monkeypatch.setattr(bank_module, "open_bus", lambda _number: ImuBus())
    monkeypatch.setattr(bank_module, "Aht10", Exploding)
    monkeypatch.setattr(bank_module, "Ens160", Working)
    monkeypatch.setattr(bank_module, "Ads1115", Working)
    settings = NodeSettings(i2c={"imu_config_path": str(tmp_path / "bmi270.bin")})

    with caplog.at_level("ERROR"):
        bank = build_sensor_bank(settings)

    assert bank.availability() == {"imu": False, "climate": False, "air_quality": True, "adc": True}
    assert caplog.text.count("Accelerometer init failed") == 1
    assert "config blob unreadable" in caplog.text
    assert caplog.text.count("Temperature/humidity sensor init failed") == 1
