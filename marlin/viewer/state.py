"""Baseline calibration, latched readings and the rolling deviation window."""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from marlin.snapshot import LATCHED_FIELDS, Snapshot

AXES = ("X", "Y", "Z")
DEFAULT_AXIS = 2


@dataclass(frozen=True)
class Baseline:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    samples: int = 0

    def for_axis(self, axis: int) -> float:
        return (self.x, self.y, self.z)[axis]

    def deviations(self, raw: Tuple[float, float, float]) -> Tuple[float, float, float]:
        return (raw[0] - self.x, raw[1] - self.y, raw[2] - self.z)


@dataclass(frozen=True)
class Frame:
    """Immutable view of the viewer state handed to the renderer."""

    axis: int
    capacity: int
    window: Tuple[float, ...]
    latched: Dict[str, Optional[float]]
    calibrated: bool
    baseline: Optional[Baseline]
    acceleration: Optional[Tuple[float, float, float]]

    @property
    def axis_name(self) -> str:
        return AXES[self.axis]

    @property
    def deviations(self) -> Optional[Tuple[float, float, float]]:
        if self.baseline is None or self.acceleration is None:
            return None
        return self.baseline.deviations(self.acceleration)


class RollingWindow:
    def __init__(self, capacity: int = 80) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self._values: Deque[float] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._values)

    def append(self, value: float) -> None:
        self._values.append(float(value))

    def clear(self) -> None:
        self._values.clear()

    def values(self) -> Tuple[float, ...]:
        return tuple(self._values)


@dataclass
class _Collector:
    xs: List[float] = field(default_factory=list)
    ys: List[float] = field(default_factory=list)
    zs: List[float] = field(default_factory=list)

    def add(self, raw: Tuple[float, float, float]) -> None:
        self.xs.append(raw[0])
        self.ys.append(raw[1])
        self.zs.append(raw[2])

    def baseline(self) -> Baseline:
        count = len(self.xs)
        if not count:
            return Baseline()
        return Baseline(x=sum(self.xs) / count, y=sum(self.ys) / count, z=sum(self.zs) / count, samples=count)


class ViewerState:
    """Everything the viewer shows, guarded by a single lock.

    Before ``calibrate`` complete acceleration triples are collected for the
    baseline and nothing is charted. Afterwards each triple appends the
    selected axis' deviation from the baseline to the rolling window.
    """

    def __init__(self, capacity: int = 80, axis: int = DEFAULT_AXIS) -> None:
        if axis not in range(len(AXES)):
            raise ValueError(f"axis must be 0-{len(AXES) - 1}")
        self._lock = threading.Lock()
        self._window = RollingWindow(capacity)
        self._axis = axis
        self._collector: Optional[_Collector] = _Collector()
        self._baseline: Optional[Baseline] = None
        self._latched: Dict[str, Optional[float]] = {name: None for name in LATCHED_FIELDS}
        self._acceleration: Optional[Tuple[float, float, float]] = None

    @property
    def calibrated(self) -> bool:
        with self._lock:
            return self._baseline is not None

    @property
    def axis(self) -> int:
        with self._lock:
            return self._axis

    @property
    def baseline(self) -> Optional[Baseline]:
        with self._lock:
            return self._baseline

    def on_snapshot(self, snapshot: Snapshot) -> None:
        if snapshot.is_empty():
            return
        raw = snapshot.acceleration()
        with self._lock:
            for name in LATCHED_FIELDS:
                value = getattr(snapshot, name)
                if value is not None:
                    self._latched[name] = value
            if raw is None:
                return
            self._acceleration = raw
            if self._baseline is None:
                if self._collector is not None:
                    self._collector.add(raw)
                return
            self._window.append(raw[self._axis] - self._baseline.for_axis(self._axis))

    def calibrate(self) -> Baseline:
        with self._lock:
            if self._baseline is None:
                collector = self._collector or _Collector()
                self._baseline = collector.baseline()
                self._collector = None
            return self._baseline

    def cycle_axis(self, step: int) -> int:
        with self._lock:
            new_axis = (self._axis + step) % len(AXES)
            if new_axis != self._axis:
                self._axis = new_axis
                self._window.clear()
            return self._axis

    def frame(self) -> Frame:
        with self._lock:
            return Frame(
                axis=self._axis,
                capacity=self._window.capacity,
                window=self._window.values(),
                latched=dict(self._latched),
                calibrated=self._baseline is not None,
                baseline=self._baseline,
                acceleration=self._acceleration,
            )
