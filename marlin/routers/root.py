from __future__ import annotations

from fastapi import APIRouter, Depends

from marlin.config import NodeSettings, get_settings

router = APIRouter()


@router.get("/")
async def index(settings: NodeSettings = Depends(get_settings)):
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "node_id": settings.node_id,
        "stream": settings.ws_path,
    }


@router.get("/healthz")
async def healthz():
    return {"status": "ok"}
