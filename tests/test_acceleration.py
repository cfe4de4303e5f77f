from __future__ import annotations

import math

import pytest

from speedometer.acceleration import (
    AccelerationState,
    AccelerationStore,
    acceleration_view,
    update_acceleration,
)


def test_acceleration_from_two_samples() -> None:
    state, current = update_acceleration(AccelerationState(), 0.0, 0.0)
    assert current is None

    state, current = update_acceleration(state, 10.0, 2.0)
    assert current == pytest.approx(5.0)
    assert state.peak_accel == pytest.approx(5.0)
    assert state.peak_decel is None


def test_peaks_are_high_water_marks() -> None:
    state = AccelerationState()
    for speed, t in [(0.0, 0.0), (10.0, 1.0), (12.0, 2.0), (2.0, 3.0), (0.0, 4.0)]:
        state, current = update_acceleration(state, speed, t)

    assert state.peak_accel == pytest.approx(10.0)
    assert state.peak_decel == pytest.approx(10.0)
    assert current == pytest.approx(-2.0)


def test_non_increasing_time_gives_no_reading() -> None:
    state, _ = update_acceleration(AccelerationState(), 5.0, 10.0)
    state, current = update_acceleration(state, 9.0, 10.0)
    assert current is None
    state, current = update_acceleration(state, 9.0, 9.0)
    assert current is None


def test_finite_sample_always_becomes_baseline() -> None:
    state, _ = update_acceleration(AccelerationState(), 5.0, 10.0)
    state, _ = update_acceleration(state, 7.0, 10.0)
    assert (state.last_speed, state.last_time) == (7.0, 10.0)

    state, current = update_acceleration(state, None, 11.0)
    assert current is None
    assert (state.last_speed, state.last_time) == (7.0, 10.0)


def test_decel_view_asymmetry() -> None:
    state = AccelerationState()
    assert acceleration_view(state, 0.0)["current_decel"] == 0.0
    assert acceleration_view(state, -3.0)["current_decel"] == 3.0
    assert acceleration_view(state, 2.0)["current_decel"] is None
    assert acceleration_view(state, None)["current_decel"] is None


def test_store_round_trip_and_reset(memory_store) -> None:
    store = AccelerationStore(memory_store)
    store.update(0.0, 0.0)
    view = store.update(10.0, 2.0)
    assert view["current"] == pytest.approx(5.0)

    restored = AccelerationStore(memory_store)
    assert restored.state.peak_accel == pytest.approx(5.0)
    assert restored.get()["current"] is None

    reset_view = store.reset()
    assert reset_view == {"current": None, "current_decel": None,
                          "peak_accel": None, "peak_decel": None}
    assert AccelerationStore(memory_store).state == AccelerationState()


def test_get_is_idempotent(memory_store) -> None:
    store = AccelerationStore(memory_store)
    store.update(1.0, 1.0)
    store.update(math.nan, 2.0)
    assert store.get() == store.get()
