"""FastAPI application streaming sensor snapshots to terminal viewers."""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from marlin import build_info
from marlin.config import NodeSettings, get_settings
from marlin.hardware import FanOutput, SensorBank, build_fan_output, build_sensor_bank
from marlin.observability import configure_logging
from marlin.routers import fan as fan_router
from marlin.routers import root as root_router
from marlin.routers import status as status_router
from marlin.routers import stream as stream_router
from marlin.services import BroadcastHub, SensorSampler, threadsafe_broadcaster

logger = logging.getLogger(__name__)

SHUTDOWN_NOTICE = "Server shutting down"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: NodeSettings = app.state.settings
    if settings.simulation.enabled and build_info.BUILD_FLAVOR == "prod":
        raise RuntimeError("Simulation is not allowed in production builds")

    bank = await asyncio.to_thread(build_sensor_bank, settings)
    fan = build_fan_output(settings.fan, simulated=settings.simulation.enabled)
    hub = BroadcastHub(send_timeout=settings.send_timeout_seconds)
    loop = asyncio.get_running_loop()
    sampler = SensorSampler(
        bank,
        threadsafe_broadcaster(hub, loop, timeout=settings.broadcast_timeout_seconds),
        interval_seconds=settings.tick_interval_seconds,
        slow_divisor=settings.slow_tick_divisor,
        adc_settle_seconds=settings.adc_settle_seconds,
    )

    app.state.sensor_bank = bank
    app.state.fan = fan
    app.state.hub = hub
    app.state.sampler = sampler
    app.state.started_at = time.monotonic()

    sampler.start()
    logger.info("Node %s streaming on %s (%s sensors)", settings.node_id, settings.ws_path, bank.backend)

    try:
        yield
    finally:
        # The sampler thread blocks on broadcasts scheduled on this loop, so
        # join it off-loop.
        await asyncio.to_thread(sampler.stop, settings.shutdown_timeout_seconds)
        try:
            await hub.broadcast_message(SHUTDOWN_NOTICE)
        except Exception as exc:
            logger.warning("Shutdown notice failed: %s", exc)
        await hub.shutdown(settings.shutdown_timeout_seconds)
        stopped_fan: Optional[FanOutput] = getattr(app.state, "fan", None)
        if stopped_fan:
            try:
                stopped_fan.set(False)
            except Exception as exc:
                logger.warning("Unable to turn the fan off: %s", exc)
            stopped_fan.close()
        closed_bank: Optional[SensorBank] = getattr(app.state, "sensor_bank", None)
        if closed_bank:
            closed_bank.close()
        logger.info("Node %s stopped", settings.node_id)


def create_app(settings: NodeSettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Marlin Node", version=settings.service_version, lifespan=lifespan)
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(root_router.router)
    app.include_router(status_router.router)
    app.include_router(fan_router.router)
    app.include_router(stream_router.build_router(settings.ws_path))
    return app


settings = get_settings()
configure_logging(settings.service_name, settings.log_level, fmt=settings.log_format)
app = create_app(settings)


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
