from __future__ import annotations

import pytest
from pydantic import ValidationError

from marlin import build_info
from marlin.config import NodeSettings, ViewerSettings, get_settings, get_viewer_settings


def test_node_defaults():
    settings = NodeSettings()
    assert settings.port == 5000
    assert settings.ws_path == "/ws"
    assert settings.tick_interval_seconds == 0.01
    assert settings.slow_tick_divisor == 100
    assert settings.adc_channels == 4
    assert settings.fan.bcm_pin == 16
    assert settings.fan.initial_on is True
    assert settings.simulation.enabled is False


@pytest.mark.parametrize(("raw", "expected"), [("0.00001", 0.001), ("5", 1.0), ("0.02", 0.02)])
def test_tick_interval_is_clamped(monkeypatch, raw, expected):
    monkeypatch.setenv("MARLIN_TICK_INTERVAL_SECONDS", raw)
    assert get_settings().tick_interval_seconds == expected


def test_nested_env_overrides(monkeypatch):
    monkeypatch.setenv("MARLIN_SIMULATION__ENABLED", "true")
    monkeypatch.setenv("MARLIN_I2C__BUS", "3")
    monkeypatch.setenv("MARLIN_FAN__BCM_PIN", "20")
    settings = get_settings()
    assert settings.simulation.enabled is True
    assert settings.i2c.bus == 3
    assert settings.fan.bcm_pin == 20


def test_ws_path_is_normalized():
    assert NodeSettings(ws_path="stream").ws_path == "/stream"
    assert ViewerSettings(ws_path="  ").ws_path == "/ws"


def test_slow_divisor_must_be_positive():
    with pytest.raises(ValidationError):
        NodeSettings(slow_tick_divisor=0)


def test_simulation_rejected_in_prod_builds(monkeypatch):
    monkeypatch.setattr(build_info, "BUILD_FLAVOR", "prod")
    with pytest.raises(ValidationError, match="Simulation is not allowed in production builds"):
        NodeSettings(simulation={"enabled": True})


def test_viewer_defaults(monkeypatch):
    monkeypatch.setenv("MARLIN_VIEWER_HOST", "marlin.local")
    settings = get_viewer_settings()
    assert (settings.host, settings.port, settings.ws_path) == ("marlin.local", 5000, "/ws")
    assert settings.window_capacity == 80
    assert settings.chart_height == 15
    assert settings.frame_interval_seconds == 0.05
    assert settings.reconnect_poll_seconds == 0.1
    assert settings.reconnect_backoff_seconds == 2.0
    assert settings.baseline_seconds == 1.0
    assert settings.log_level == "WARNING"
