"""Sampling and broadcast services for the node."""
from __future__ import annotations

from .hub import BroadcastHub, HubConnection, WebSocketConnection, threadsafe_broadcaster
from .sampler import SamplerStats, SensorSampler

__all__ = [
    "BroadcastHub",
    "HubConnection",
    "WebSocketConnection",
    "threadsafe_broadcaster",
    "SamplerStats",
    "SensorSampler",
]
