"""Exception types shared by the node and the viewer."""
from __future__ import annotations


class MarlinError(RuntimeError):
    pass


class SensorUnavailableError(MarlinError):
    """A sensor could not be initialized; it stays absent for the process lifetime."""


class SensorReadError(MarlinError):
    """A single read failed; only that field is absent for the current tick."""
