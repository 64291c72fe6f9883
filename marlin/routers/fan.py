from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from marlin.hardware import FanOutput
from marlin.schemas import FanState, FanUpdatePayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


def _fan(request: Request) -> FanOutput:
    fan: FanOutput | None = getattr(request.app.state, "fan", None)
    if fan is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Fan output not initialized")
    return fan


@router.get("/fan", response_model=FanState)
async def fan_state(request: Request) -> FanState:
    fan = _fan(request)
    return FanState(on=fan.is_on, backend=fan.backend)


@router.put("/fan", response_model=FanState)
async def update_fan(payload: FanUpdatePayload, request: Request) -> FanState:
    fan = _fan(request)
    try:
        fan.set(payload.on)
    except Exception as exc:
        logger.warning("Fan update failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Fan update failed: {exc}") from exc
    logger.info("Fan turned %s", "on" if payload.on else "off")
    return FanState(on=fan.is_on, backend=fan.backend)
