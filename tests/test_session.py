from __future__ import annotations

import logging

import pytest

from speedometer.constants import QUARTER_MILE_M
from speedometer.errors import SensorUnavailable
from speedometer.session import TelemetrySession
from speedometer.telemetry import DisplayBridge, SnapshotHistory

from tests.helpers import make_fix

# Roughly 10 m of latitude
TEN_METERS_LAT = 10.0 / 111195.0


class StubSource:
    def __init__(self, available: bool) -> None:
        self.available = available

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def session(memory_store, clock) -> TelemetrySession:
    session = TelemetrySession(memory_store, clock=clock)
    session.start()
    return session


def test_fixes_are_ignored_until_tracking(memory_store, clock) -> None:
    session = TelemetrySession(memory_store, clock=clock)
    assert session.handle_position(make_fix(0.0, 0.0, 0.0, speed=3.0)) is None
    assert session.snapshot()["speed"] is None


def test_unavailable_source_does_not_start(memory_store, clock) -> None:
    session = TelemetrySession(memory_store, clock=clock)
    with pytest.raises(SensorUnavailable):
        session.start(StubSource(False))
    assert not session.is_tracking

    session.start(StubSource(True))
    assert session.is_tracking


def test_source_error_stops_tracking(session) -> None:
    with pytest.raises(SensorUnavailable, match="timeout"):
        session.handle_error("timeout")
    assert not session.is_tracking


def test_first_fix_populates_snapshot(session) -> None:
    snapshot = session.handle_position(make_fix(51.5, -0.12, 100.0, speed=10.0, heading=370.0))

    assert snapshot["lat"] == 51.5
    assert snapshot["lon"] == -0.12
    assert snapshot["heading"] == pytest.approx(10.0)
    assert snapshot["gpsTimestamp"] == 100.0
    assert snapshot["speed"] == 10.0
    assert snapshot["speedKph"] == pytest.approx(36.0)
    assert snapshot["distanceMeters"] == 0.0
    assert snapshot["accelCurrent"] is None
    assert snapshot["quarterStatus"] == "Running"


def test_secant_speed_when_sensor_omits_it(session) -> None:
    session.handle_position(make_fix(0.0, 0.0, 0.0))
    snapshot = session.handle_position(make_fix(TEN_METERS_LAT, 0.0, 2.0))

    assert snapshot["distanceMeters"] == pytest.approx(10.0, rel=1e-3)
    assert snapshot["speed"] == pytest.approx(5.0, rel=1e-3)
    assert snapshot["heading"] is None


def test_duplicate_and_out_of_order_fixes_are_dropped(session) -> None:
    first = session.handle_position(make_fix(0.0, 0.0, 10.0, speed=2.0))
    assert session.handle_position(make_fix(0.0, 0.0, 10.0, speed=2.0)) is None
    assert session.handle_position(make_fix(1.0, 1.0, 5.0, speed=9.0)) is None
    assert session.snapshot()["speed"] == first["speed"]
    assert session.snapshot()["distanceMeters"] == 0.0


def test_invalid_fix_leaves_state_unchanged(session) -> None:
    session.handle_position(make_fix(0.0, 0.0, 0.0, speed=2.0))
    before = dict(session.snapshot())
    assert session.handle_position(make_fix(float("nan"), 0.0, 1.0, speed=5.0)) is None
    assert dict(session.snapshot()) == before


def test_long_gap_is_just_a_larger_dt(session, caplog) -> None:
    session.handle_position(make_fix(0.0, 0.0, 0.0))
    with caplog.at_level(logging.INFO, logger="speedometer.session"):
        snapshot = session.handle_position(make_fix(TEN_METERS_LAT, 0.0, 3600.0))
    assert snapshot["speed"] == pytest.approx(10.0 / 3600.0, rel=1e-3)
    assert "No fix for 3600.0 s" in caplog.text


def test_toggle_starts_and_stops(memory_store, clock) -> None:
    session = TelemetrySession(memory_store, clock=clock)
    assert session.toggle() is True
    session.handle_position(make_fix(0.0, 0.0, 0.0, speed=4.0))
    assert session.toggle() is False
    assert session.handle_position(make_fix(0.0, 0.0, 1.0, speed=5.0)) is None
    assert session.snapshot()["speed"] == 4.0


def test_quarter_mile_through_session(session) -> None:
    lat_step = (QUARTER_MILE_M / 4 + 1.0) / 111195.0
    session.handle_position(make_fix(0.0, 0.0, 0.0, speed=20.0))
    snapshot = None
    for step in range(1, 5):
        snapshot = session.handle_position(make_fix(lat_step * step, 0.0, 5.0 * step, speed=20.0))

    assert snapshot["quarterStatus"] == "Completed"
    assert snapshot["quarterLast"] == pytest.approx(20.0)
    assert snapshot["quarterBest"] == pytest.approx(20.0)


def test_zero_to_sixty_through_session(session) -> None:
    for t, speed in enumerate([0.0, 0.0, 10.0, 20.0, 27.0]):
        snapshot = session.handle_position(make_fix(0.0, 0.0001 * t, float(t), speed=speed))
    assert snapshot["zeroSixtyLast"] == pytest.approx(2.0)
    assert snapshot["zeroSixtyBest"] == pytest.approx(2.0)
    assert snapshot["peakAccel"] == pytest.approx(10.0)


def test_persisted_readouts_are_restored(memory_store, clock) -> None:
    first = TelemetrySession(memory_store, clock=clock)
    first.start()
    first.handle_position(make_fix(0.0, 0.0, 0.0, speed=4.0))
    first.handle_position(make_fix(TEN_METERS_LAT, 0.0, 1.0, speed=8.0))

    restored = TelemetrySession(memory_store, clock=clock).snapshot()
    assert restored["speed"] is None
    assert restored["lat"] is None
    assert restored["speedMax"] == 8.0
    assert restored["speedAvg"] == pytest.approx(6.0)
    assert restored["peakAccel"] == pytest.approx(4.0)
    assert restored["distanceMeters"] == pytest.approx(10.0, rel=1e-3)


def test_reset_returns_default_telemetry(session, memory_store, clock) -> None:
    for t, speed in enumerate([0.0, 10.0, 30.0, 5.0]):
        session.handle_position(make_fix(TEN_METERS_LAT * t, 0.0, float(t), speed=speed))
    clock.advance(42)
    session.tick()

    snapshot = session.reset()

    for field in ("lat", "lon", "heading", "gpsTimestamp", "speed", "speedMin", "speedMax",
                  "speedAvg", "accelCurrent", "decelCurrent", "peakAccel", "peakDecel",
                  "quarterLast", "quarterBest", "zeroSixtyLast", "zeroSixtyBest"):
        assert snapshot[field] is None, field
    assert snapshot["distanceMeters"] == 0.0
    assert snapshot["quarterStatus"] == "Standby"
    assert snapshot["sessionSeconds"] == 0

    restored = TelemetrySession(memory_store, clock=clock).snapshot()
    assert restored["distanceMeters"] == 0.0
    assert restored["speedMax"] is None
    assert restored["zeroSixtyBest"] is None


def test_tick_only_broadcasts_on_change(memory_store, clock) -> None:
    received = []
    bridge = DisplayBridge()
    bridge.register(received.append)
    session = TelemetrySession(memory_store, bridge=bridge, clock=clock)
    session.start()
    count = len(received)

    clock.advance(0.2)
    assert session.tick() == 0
    assert len(received) == count

    clock.advance(1.0)
    assert session.tick() == 1
    assert len(received) == count + 1
    assert received[-1]["payload"]["sessionSeconds"] == 1


def test_restart_clears_transient_detector_state(session) -> None:
    session.handle_position(make_fix(0.0, 0.0, 0.0, speed=5.0))
    assert session.snapshot()["quarterStatus"] == "Running"

    session.stop()
    session.start()
    assert session.last_sample is None
    assert session.quarter_mile.run.is_armed is False


def test_history_records_every_snapshot(memory_store, clock) -> None:
    history = SnapshotHistory()
    bridge = DisplayBridge()
    bridge.register(history, label="Snapshot History")
    session = TelemetrySession(memory_store, bridge=bridge, clock=clock)
    session.start()
    session.handle_position(make_fix(0.0, 0.0, 0.0, speed=1.0))

    assert history.entries()[-1]["speed"] == 1.0


def test_broken_display_does_not_break_tracking(memory_store, clock, caplog) -> None:
    def broken(message):
        raise RuntimeError("boom")

    bridge = DisplayBridge()
    bridge.register(broken, label="Broken")
    session = TelemetrySession(memory_store, bridge=bridge, clock=clock)
    session.start()

    with caplog.at_level(logging.WARNING, logger="speedometer.telemetry"):
        snapshot = session.handle_position(make_fix(0.0, 0.0, 0.0, speed=1.0))
    assert snapshot["speed"] == 1.0
    assert any("Broken" in record.getMessage() for record in caplog.records)
