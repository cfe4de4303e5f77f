"""
Session Controller for the GPS Speedometer Telemetry Engine

This module owns every accumulator of a tracking session and runs each
accepted position fix through the derivation pipeline in a fixed order:
distance, speed, speed statistics, acceleration, quarter mile, zero to sixty,
and finally the telemetry snapshot.
"""

import logging
import math
import time
from typing import Callable, Mapping, Optional
from . import constants
from . import metrics
from . import telemetry
from .acceleration import AccelerationStore
from .errors import InvalidSample, SensorUnavailable
from .quarter_mile import QuarterMileTracker
from .samples import GeoSample, normalize_fix
from .speed_stats import SpeedStatsStore
from .zero_sixty import ZeroSixtyTracker

logger = logging.getLogger(__name__)


class TelemetrySession:
    """
    Single writer of all telemetry state for one vehicle.

    Position fixes, the session ticker and user resets all go through this
    object, one call at a time. Persisted accumulators are loaded from
    ``kv_store`` on construction; the transient detector state restarts at
    every ``start()``.

    Usage:
        session = TelemetrySession(JsonFileStore())
        session.start()
        snapshot = session.handle_position({"latitude": 51.5, "longitude": -0.12,
                                            "timestamp": 1700000000000, "speed": 12.3})
    """

    def __init__(self, kv_store=None, bridge: Optional[telemetry.DisplayBridge] = None,
                 clock: Callable[[], float] = time.time):
        self.kv_store = kv_store
        self.clock = clock
        self.distance = metrics.DistanceStore(kv_store)
        self.speed_stats = SpeedStatsStore(kv_store)
        self.acceleration = AccelerationStore(kv_store)
        self.quarter_mile = QuarterMileTracker(kv_store)
        self.zero_sixty = ZeroSixtyTracker(kv_store)
        self.assembler = telemetry.SnapshotAssembler(
            bridge, clock=lambda: int(self.clock() * 1000)
        )
        self.last_sample: Optional[GeoSample] = None
        self.session_start: Optional[float] = None
        self.is_tracking = False

        self.restore_persisted_readouts()

    @property
    def bridge(self) -> telemetry.DisplayBridge:
        return self.assembler.bridge

    def _accumulator_fragments(self) -> dict:
        fragments = {}
        fragments.update(telemetry.speed_stats_fragment(self.speed_stats.get()))
        fragments.update(telemetry.acceleration_fragment(self.acceleration.get()))
        fragments.update(telemetry.distance_fragment(self.distance.get()))
        fragments.update(telemetry.quarter_mile_fragment(self.quarter_mile.get()))
        fragments.update(telemetry.zero_sixty_fragment(self.zero_sixty.get()))
        return fragments

    def restore_persisted_readouts(self) -> Mapping:
        """Publish the persisted accumulator values before any fix arrives."""
        update = {"lat": None, "lon": None, "heading": None, "gpsTimestamp": None}
        update.update(telemetry.speed_fragment(None))
        update.update(self._accumulator_fragments())
        return self.assembler.push(update)

    # ========================================================================
    # TRACKING LIFECYCLE
    # ========================================================================

    def start(self, source=None) -> None:
        """
        Start tracking.

        Args:
            source: Optional position source exposing ``is_available()``.

        Raises:
            SensorUnavailable: If the position source cannot be acquired.
                Tracking is not started.
        """
        if self.is_tracking:
            return

        if source is not None and not source.is_available():
            logger.error("Position source %r is not available", source)
            raise SensorUnavailable("Geolocation is not supported on this device.")

        # Transient state restarts at every session boundary
        self.last_sample = None
        self.acceleration.current = None
        self.quarter_mile.clear_run()
        self.zero_sixty.clear_run()

        self.is_tracking = True
        self.session_start = self.clock()
        logger.info("Tracking started")
        self.tick()

    def stop(self) -> None:
        if self.is_tracking:
            logger.info("Tracking stopped")
        self.is_tracking = False

    def toggle(self, source=None) -> bool:
        if self.is_tracking:
            self.stop()
        else:
            self.start(source)
        return self.is_tracking

    def handle_error(self, message: str) -> None:
        """
        Report a position source failure.

        Stops tracking, then surfaces the failure to the caller.

        Raises:
            SensorUnavailable: Always.
        """
        self.stop()
        logger.error("Geolocation error: %s", message)
        raise SensorUnavailable(f"Geolocation error: {message}")

    # ========================================================================
    # FIX PROCESSING
    # ========================================================================

    def handle_position(self, raw: Mapping) -> Optional[Mapping]:
        """
        Run one raw position fix through the telemetry pipeline.

        Fixes received while not tracking, invalid fixes, and fixes whose
        timestamp does not advance past the previous accepted fix are dropped
        without touching any state.

        Args:
            raw: Raw fix with latitude, longitude, timestamp (epoch ms) and
                optional speed (m/s) and heading (degrees).

        Returns:
            The updated telemetry snapshot, or None if the fix was dropped.
        """
        if not self.is_tracking:
            logger.debug("Ignoring fix received while not tracking")
            return None

        try:
            sample = normalize_fix(raw)
        except InvalidSample as exc:
            logger.debug("Dropping invalid fix: %s", exc)
            return None

        previous = self.last_sample
        if previous is not None and sample.timestamp_s <= previous.timestamp_s:
            logger.debug("Dropping fix at %.3f s, not after %.3f s",
                         sample.timestamp_s, previous.timestamp_s)
            return None

        if previous is not None and sample.timestamp_s - previous.timestamp_s > constants.FIX_TIMEOUT_S:
            logger.info("No fix for %.1f s, resuming", sample.timestamp_s - previous.timestamp_s)

        timestamp = sample.timestamp_s
        delta_m = metrics.compute_travel_delta(previous, sample)
        total_distance = self.distance.update(delta_m)
        speed = metrics.resolve_speed(sample.speed, delta_m, previous, sample)

        stats = self.speed_stats.update(speed)
        acceleration = self.acceleration.update(speed, timestamp)
        quarter = self.quarter_mile.update(total_distance, speed, timestamp)
        zero_sixty = self.zero_sixty.update(speed, timestamp)

        self.last_sample = sample

        update = {
            "lat": sample.latitude,
            "lon": sample.longitude,
            "heading": sample.heading,
            "gpsTimestamp": timestamp,
        }
        update.update(telemetry.speed_fragment(speed))
        update.update(telemetry.speed_stats_fragment(stats))
        update.update(telemetry.acceleration_fragment(acceleration))
        update.update(telemetry.distance_fragment(total_distance))
        update.update(telemetry.quarter_mile_fragment(quarter))
        update.update(telemetry.zero_sixty_fragment(zero_sixty))
        return self.assembler.push(update)

    # ========================================================================
    # SESSION CLOCK & RESET
    # ========================================================================

    def elapsed_seconds(self, now: Optional[float] = None) -> int:
        if self.session_start is None:
            return 0
        now = self.clock() if now is None else now
        return max(0, math.floor(now - self.session_start + 0.5))

    def tick(self, now: Optional[float] = None) -> int:
        """
        Update the session duration.

        A partial snapshot is pushed only when the whole-second value
        changed.

        Returns:
            Elapsed session time in whole seconds.
        """
        elapsed = self.elapsed_seconds(now)
        if self.assembler.get("sessionSeconds") != elapsed:
            self.assembler.push({"sessionSeconds": elapsed})
        return elapsed

    def reset(self) -> Mapping:
        """
        Zero every accumulator and clear all detector state.

        Returns:
            The snapshot after the reset.
        """
        self.speed_stats.reset()
        self.acceleration.reset()
        self.distance.reset()
        self.quarter_mile.reset()
        self.zero_sixty.reset()

        self.last_sample = None
        self.session_start = self.clock()
        logger.info("All telemetry accumulators reset")

        update = {"lat": None, "lon": None, "heading": None, "gpsTimestamp": None}
        update.update(telemetry.speed_fragment(None))
        update.update(self._accumulator_fragments())
        self.assembler.push(update)
        self.tick()
        return self.snapshot()

    def snapshot(self) -> Mapping:
        return self.assembler.snapshot()
