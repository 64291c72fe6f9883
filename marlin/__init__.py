"""Marlin sensor node and live terminal viewer."""
from __future__ import annotations

__version__ = "0.1.0"
