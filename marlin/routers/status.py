from __future__ import annotations

import time
from typing import Dict

import psutil
from fastapi import APIRouter, Depends, Request

from marlin.config import NodeSettings, get_settings
from marlin.hardware import FanOutput, SensorBank
from marlin.services import BroadcastHub, SensorSampler

router = APIRouter(prefix="/v1")


@router.get("/status")
async def status_endpoint(request: Request, settings: NodeSettings = Depends(get_settings)) -> Dict[str, object]:
    uptime = int(time.monotonic() - getattr(request.app.state, "started_at", time.monotonic()))
    memory = psutil.virtual_memory()
    hub: BroadcastHub | None = getattr(request.app.state, "hub", None)
    sampler: SensorSampler | None = getattr(request.app.state, "sampler", None)
    bank: SensorBank | None = getattr(request.app.state, "sensor_bank", None)
    fan: FanOutput | None = getattr(request.app.state, "fan", None)
    return {
        "node_id": settings.node_id,
        "service_version": settings.service_version,
        "uptime_seconds": uptime,
        "cpu_percent": psutil.cpu_percent(interval=0.0),
        "memory_percent": memory.percent,
        "viewers": hub.connection_count if hub else 0,
        "sampler": {
            "running": bool(sampler and sampler.running),
            "tick_interval_seconds": settings.tick_interval_seconds,
            "slow_tick_divisor": settings.slow_tick_divisor,
            **(sampler.stats() if sampler else {}),
        },
        "sensors": {
            "backend": bank.backend if bank else None,
            **(bank.availability() if bank else {}),
        },
        "fan": {
            "on": fan.is_on if fan else None,
            "backend": fan.backend if fan else None,
        },
        "simulation": settings.simulation.enabled,
    }
