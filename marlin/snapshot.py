"""Composite sensor snapshot and its JSON wire format.

One snapshot is produced per sampler tick. Every channel is optional: a
channel that was not read (or failed) on that tick is ``None`` and is omitted
from the wire frame entirely. Inbound frames are matched case-insensitively,
unknown keys are ignored, and anything that is not a JSON object of numbers
parses to ``None`` so other message types can share the socket.
"""
from __future__ import annotations

import json
import math
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

ACCELERATION_FIELDS = ("acceleration_x", "acceleration_y", "acceleration_z")
LATCHED_FIELDS = ("temperature", "humidity", "tvoc", "co2", "adc0", "adc1", "adc2", "adc3")
ADC_FIELDS = ("adc0", "adc1", "adc2", "adc3")
ALL_FIELDS = ACCELERATION_FIELDS + LATCHED_FIELDS

# Lower-cased wire key -> attribute name. Includes the single-ADC and
# "<name>Value" spellings emitted by older node firmware.
_WIRE_KEYS: Dict[str, str] = {to_camel(name).lower(): name for name in ALL_FIELDS}
_WIRE_KEYS.update({name: name for name in ALL_FIELDS})
_WIRE_KEYS.update(
    {
        "adc": "adc0",
        "adcvalue": "adc0",
        "adc0value": "adc0",
        "adc1value": "adc1",
        "adc2value": "adc2",
        "adc3value": "adc3",
    }
)


class Snapshot(BaseModel):
    """Optional readings captured during a single sampler tick."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    acceleration_x: Optional[float] = None
    acceleration_y: Optional[float] = None
    acceleration_z: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    tvoc: Optional[float] = None
    co2: Optional[float] = None
    adc0: Optional[float] = None
    adc1: Optional[float] = None
    adc2: Optional[float] = None
    adc3: Optional[float] = None

    @field_validator(*ALL_FIELDS)
    @classmethod
    def _finite_or_absent(cls, value: Optional[float]) -> Optional[float]:
        # NaN and infinities have no JSON form; treat them as not read.
        if value is None or not math.isfinite(value):
            return None
        return value

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in ALL_FIELDS)

    def present(self) -> Dict[str, float]:
        """Present channels keyed by attribute name."""

        values = {name: getattr(self, name) for name in ALL_FIELDS}
        return {name: float(value) for name, value in values.items() if value is not None}

    def acceleration(self) -> Optional[Tuple[float, float, float]]:
        """The (x, y, z) triple, or ``None`` unless all three axes are present."""

        x, y, z = self.acceleration_x, self.acceleration_y, self.acceleration_z
        if x is None or y is None or z is None:
            return None
        return (x, y, z)

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, payload: str | bytes) -> Optional["Snapshot"]:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        fields: Dict[str, object] = {}
        for key, value in data.items():
            name = _WIRE_KEYS.get(str(key).lower())
            if name is not None:
                fields[name] = value
        try:
            return cls(**fields)
        except ValidationError:
            return None
