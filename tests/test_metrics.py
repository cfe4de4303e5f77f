from __future__ import annotations

import math

import pytest

from speedometer.metrics import (
    DistanceState,
    DistanceStore,
    compute_travel_delta,
    haversine_m,
    resolve_speed,
    update_distance,
)
from speedometer.samples import GeoSample, normalize_fix
from speedometer.errors import InvalidSample


def _sample(lat: float, lon: float, t: float, speed: float | None = None) -> GeoSample:
    return GeoSample(latitude=lat, longitude=lon, timestamp_s=t, speed=speed)


def test_one_degree_of_latitude_at_equator() -> None:
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111195.0, abs=1.0)


def test_identical_points_have_zero_distance() -> None:
    assert haversine_m(48.2, 16.37, 48.2, 16.37) == 0.0


def test_first_fix_contributes_no_distance() -> None:
    assert compute_travel_delta(None, _sample(10.0, 10.0, 0.0)) == 0.0


def test_distance_only_accumulates_finite_positive_deltas() -> None:
    state = DistanceState()
    state, changed = update_distance(state, 10.0)
    assert changed and state.total_meters == 10.0

    for bad in (0.0, -5.0, math.nan, math.inf, None):
        new_state, changed = update_distance(state, bad)
        assert not changed
        assert new_state.total_meters == 10.0


def test_distance_is_monotone_for_jittery_input(memory_store) -> None:
    store = DistanceStore(memory_store)
    points = [(0.0, 0.0), (0.0, 0.001), (0.0, 0.0005), (0.0, 0.0005), (0.001, 0.0)]
    previous = None
    totals = []
    for i, (lat, lon) in enumerate(points):
        current = _sample(lat, lon, float(i))
        totals.append(store.update(compute_travel_delta(previous, current)))
        previous = current
    assert totals == sorted(totals)


def test_two_identical_points_leave_distance_at_zero(memory_store) -> None:
    store = DistanceStore(memory_store)
    first = _sample(51.5, -0.12, 0.0)
    second = _sample(51.5, -0.12, 1.0)
    store.update(compute_travel_delta(None, first))
    assert store.update(compute_travel_delta(first, second)) == 0.0


def test_distance_persists_and_resets(memory_store) -> None:
    store = DistanceStore(memory_store)
    store.update(123.5)
    assert DistanceStore(memory_store).get() == 123.5

    assert store.reset() == 0.0
    assert DistanceStore(memory_store).get() == 0.0


def test_distance_get_is_idempotent(memory_store) -> None:
    store = DistanceStore(memory_store)
    store.update(42.0)
    assert store.get() == store.get() == 42.0


def test_sensor_speed_is_preferred() -> None:
    previous = _sample(0.0, 0.0, 0.0)
    current = _sample(0.0, 0.001, 1.0)
    assert resolve_speed(7.5, 111.0, previous, current) == 7.5


def test_secant_speed_fallback() -> None:
    previous = _sample(0.0, 0.0, 10.0)
    current = _sample(0.0, 0.001, 12.0)
    assert resolve_speed(None, 100.0, previous, current) == pytest.approx(50.0)


def test_speed_unresolved_without_previous_or_elapsed_time() -> None:
    current = _sample(0.0, 0.0, 5.0)
    assert resolve_speed(None, 0.0, None, current) is None
    assert resolve_speed(None, 0.0, _sample(0.0, 0.0, 5.0), current) is None
    assert resolve_speed(math.nan, 10.0, _sample(0.0, 0.0, 4.0), current) == 10.0
    assert resolve_speed(None, math.nan, _sample(0.0, 0.0, 4.0), current) is None


def test_normalize_fix_converts_units_and_heading() -> None:
    sample = normalize_fix({"latitude": 1.5, "longitude": -2.5, "timestamp": 2500,
                            "speed": 3.0, "heading": -90})
    assert sample.timestamp_s == 2.5
    assert sample.heading == 270.0
    assert sample.speed == 3.0


def test_normalize_fix_keeps_missing_heading_unavailable() -> None:
    sample = normalize_fix({"latitude": 1.0, "longitude": 2.0, "timestamp": 0,
                            "speed": None, "heading": float("nan")})
    assert sample.heading is None
    assert sample.speed is None


@pytest.mark.parametrize(
    "raw",
    [
        {"latitude": math.nan, "longitude": 0.0, "timestamp": 0},
        {"latitude": 0.0, "longitude": math.inf, "timestamp": 0},
        {"latitude": 0.0, "longitude": 0.0, "timestamp": None},
        {"latitude": 91.0, "longitude": 0.0, "timestamp": 0},
        {"latitude": 0.0, "longitude": -181.0, "timestamp": 0},
        {"longitude": 0.0, "timestamp": 0},
        "not a fix",
    ],
)
def test_normalize_fix_rejects_invalid_samples(raw) -> None:
    with pytest.raises(InvalidSample):
        normalize_fix(raw)
