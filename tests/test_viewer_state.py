from __future__ import annotations

import pytest

from marlin.snapshot import Snapshot
from marlin.viewer.state import RollingWindow, ViewerState


def _accel(x: float, y: float, z: float) -> Snapshot:
    return Snapshot(acceleration_x=x, acceleration_y=y, acceleration_z=z)


def test_collecting_state_produces_no_chart_values():
    state = ViewerState()
    state.on_snapshot(_accel(0.0, 0.0, 9.8))
    frame = state.frame()
    assert frame.window == ()
    assert not frame.calibrated


def test_baseline_is_mean_of_calibration_samples():
    state = ViewerState()
    state.on_snapshot(_accel(0.1, 0.2, 9.7))
    state.on_snapshot(_accel(0.3, 0.4, 9.9))
    baseline = state.calibrate()
    assert baseline.x == pytest.approx(0.2)
    assert baseline.y == pytest.approx(0.3)
    assert baseline.z == pytest.approx(9.8)
    assert baseline.samples == 2


def test_calibrate_without_samples_uses_zero_baseline():
    state = ViewerState()
    baseline = state.calibrate()
    assert (baseline.x, baseline.y, baseline.z, baseline.samples) == (0.0, 0.0, 0.0, 0)
    state.on_snapshot(_accel(0.0, 0.0, 1.0))
    assert state.frame().window == (1.0,)


def test_calibrate_is_idempotent():
    state = ViewerState()
    state.on_snapshot(_accel(0.0, 0.0, 1.0))
    first = state.calibrate()
    state.on_snapshot(_accel(0.0, 0.0, 5.0))
    assert state.calibrate() is first


def test_end_to_end_deviation_on_default_axis():
    state = ViewerState()
    for _ in range(100):
        state.on_snapshot(_accel(1.0, 0.0, 9.8))
    baseline = state.calibrate()
    assert baseline.samples == 100
    assert baseline.x == pytest.approx(1.0)
    assert baseline.z == pytest.approx(9.8)

    state.on_snapshot(_accel(1.0, 0.0, 10.3))
    frame = state.frame()
    assert frame.axis_name == "Z"
    assert frame.window == pytest.approx((0.5,))
    assert frame.deviations == pytest.approx((0.0, 0.0, 0.5))


def test_partial_acceleration_is_ignored():
    state = ViewerState()
    state.calibrate()
    state.on_snapshot(Snapshot(acceleration_x=0.1, acceleration_z=1.0))
    assert state.frame().window == ()


def test_window_never_exceeds_capacity():
    state = ViewerState(capacity=80)
    state.calibrate()
    for idx in range(200):
        state.on_snapshot(_accel(0.0, 0.0, float(idx)))
    window = state.frame().window
    assert len(window) == 80
    assert window[0] == 120.0
    assert window[-1] == 199.0


def test_axis_change_clears_window_and_keeps_baseline():
    state = ViewerState()
    state.on_snapshot(_accel(1.0, 2.0, 3.0))
    baseline = state.calibrate()
    state.on_snapshot(_accel(1.5, 2.0, 3.0))
    assert state.frame().window

    assert state.cycle_axis(+1) == 0
    frame = state.frame()
    assert frame.window == ()
    assert frame.baseline is baseline
    state.on_snapshot(_accel(1.5, 2.0, 3.0))
    assert state.frame().window == pytest.approx((0.5,))


def test_cycle_axis_wraps_both_ways():
    state = ViewerState()
    assert state.cycle_axis(-1) == 1
    assert state.cycle_axis(-1) == 0
    assert state.cycle_axis(-1) == 2
    assert state.cycle_axis(+1) == 0


def test_latched_readings_update_in_any_state_and_persist():
    state = ViewerState()
    state.on_snapshot(Snapshot(temperature=21.0, adc2=1.25))
    state.calibrate()
    state.on_snapshot(Snapshot(humidity=40.0))
    latched = state.frame().latched
    assert latched["temperature"] == 21.0
    assert latched["humidity"] == 40.0
    assert latched["adc2"] == 1.25
    assert latched["co2"] is None


def test_frame_is_a_copy():
    state = ViewerState()
    state.calibrate()
    state.on_snapshot(_accel(0.0, 0.0, 1.0))
    frame = state.frame()
    state.on_snapshot(_accel(0.0, 0.0, 2.0))
    assert frame.window == (1.0,)


def test_rolling_window_rejects_zero_capacity():
    with pytest.raises(ValueError):
        RollingWindow(0)
