"""Runtime configuration for the sensor node and the terminal viewer."""
from __future__ import annotations

import socket
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from marlin import __version__, build_info

MIN_TICK_SECONDS = 0.001
MAX_TICK_SECONDS = 1.0
DEFAULT_PORT = 5000
DEFAULT_WS_PATH = "/ws"


def _clamp_seconds(value: float, *, field: str, low: float, high: float) -> float:
    try:
        parsed = float(value)
    except Exception as exc:
        raise ValueError(f"{field} must be a number") from exc
    if parsed != parsed:  # NaN
        raise ValueError(f"{field} must be a real number")
    return max(low, min(parsed, high))


def _normalize_ws_path(value: str) -> str:
    cleaned = (value or "").strip() or DEFAULT_WS_PATH
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned
    return cleaned


class I2cSettings(BaseModel):
    """I2C bus and device addresses for the sensor HAT."""

    bus: int = Field(default=1, ge=0, description="Linux I2C bus number (/dev/i2c-N)")
    imu_address: int = Field(default=0x68, description="BMI270 accelerometer address")
    imu_config_path: Optional[str] = Field(
        default=None,
        description="Path to the BMI270 feature-engine config blob uploaded at init",
    )
    climate_address: int = Field(default=0x38, description="AHT10 temperature/humidity address")
    air_quality_address: int = Field(default=0x52, description="ENS160 air quality address")
    adc_address: int = Field(default=0x48, description="ADS1115 ADC address")


class FanSettings(BaseModel):
    enabled: bool = Field(default=True, description="Drive the enclosure fan from a GPIO output")
    bcm_pin: int = Field(default=16, ge=0, description="BCM GPIO number for the fan output")
    initial_on: bool = Field(default=True, description="Fan state applied at startup")


class SimulationSettings(BaseModel):
    enabled: bool = Field(default=False, description="Use simulated sensors instead of I2C hardware")
    seed: Optional[int] = None
    noise_g: float = Field(default=0.002, ge=0.0, description="Gaussian noise on simulated acceleration")
    offline_channels: list[str] = Field(
        default_factory=list,
        description="Simulated sensors that fail to initialize (imu, climate, air_quality, adc)",
    )


class NodeSettings(BaseSettings):
    """Environment driven settings for the sampling node."""

    node_id: str = Field(default_factory=socket.gethostname, description="Identifier reported by /v1/status")
    service_name: str = "marlin-node"
    service_version: str = __version__
    log_level: str = "INFO"
    log_format: str = Field(default="json", description="json or text")
    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    ws_path: str = DEFAULT_WS_PATH
    tick_interval_seconds: float = Field(default=0.01, description="Base sampler period (100 Hz)")
    slow_tick_divisor: int = Field(default=100, ge=1, description="Read the slow sensor group every Nth tick")
    adc_settle_seconds: float = Field(default=0.01, ge=0.0, description="Delay after switching ADC channel")
    adc_channels: int = Field(default=4, ge=1, le=4)
    broadcast_timeout_seconds: float = Field(default=1.0, gt=0)
    send_timeout_seconds: float = Field(default=0.5, gt=0)
    shutdown_timeout_seconds: float = Field(default=2.0, gt=0)
    i2c: I2cSettings = Field(default_factory=I2cSettings)
    fan: FanSettings = Field(default_factory=FanSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)

    model_config = SettingsConfigDict(
        env_prefix="MARLIN_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("tick_interval_seconds")
    @classmethod
    def _clamp_tick(cls, value: float) -> float:
        return _clamp_seconds(value, field="tick_interval_seconds", low=MIN_TICK_SECONDS, high=MAX_TICK_SECONDS)

    @field_validator("ws_path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return _normalize_ws_path(value)

    @model_validator(mode="after")
    def _check_flavor(self):
        if build_info.BUILD_FLAVOR == "prod" and self.simulation.enabled:
            raise ValueError("Simulation is not allowed in production builds")
        return self


class ViewerSettings(BaseSettings):
    """Settings for the terminal viewer."""

    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    ws_path: str = DEFAULT_WS_PATH
    window_capacity: int = Field(default=80, ge=1, description="Rolling window length in samples")
    chart_height: int = Field(default=15, ge=3)
    chart_margin: int = Field(default=4, ge=0, description="Columns reserved beside the chart")
    frame_interval_seconds: float = Field(default=0.05, gt=0, description="Renderer period (20 FPS)")
    reconnect_poll_seconds: float = Field(default=0.1, gt=0)
    reconnect_backoff_seconds: float = Field(default=2.0, ge=0)
    baseline_seconds: float = Field(default=1.0, ge=0)
    open_timeout_seconds: float = Field(default=5.0, gt=0)
    disconnect_timeout_seconds: float = Field(default=2.0, gt=0)
    log_level: str = "WARNING"
    log_file: Optional[str] = Field(default=None, description="Write viewer logs here instead of stderr")

    model_config = SettingsConfigDict(
        env_prefix="MARLIN_VIEWER_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("ws_path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return _normalize_ws_path(value)


@lru_cache(maxsize=1)
def get_settings() -> NodeSettings:
    return NodeSettings()


@lru_cache(maxsize=1)
def get_viewer_settings() -> ViewerSettings:
    return ViewerSettings()
