from __future__ import annotations

from pydantic import BaseModel


class FanUpdatePayload(BaseModel):
    on: bool


class FanState(BaseModel):
    on: bool
    backend: str
