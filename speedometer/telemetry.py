"""
Telemetry Snapshot Assembly for the GPS Speedometer Telemetry Engine

This module converts accumulator outputs into snapshot fragments, merges them
into the single telemetry record, and fans the resulting snapshot out to any
registered display consumers.
"""

import copy
import logging
import time
from collections import deque
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional
from . import constants
from . import utils

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def default_snapshot(updated_at: Optional[int] = None) -> Dict:
    """
    Build the snapshot shown before any fix has been received.

    Args:
        updated_at: Wall-clock stamp in epoch milliseconds. Defaults to now.

    Returns:
        Dictionary with every snapshot field at its default value.
    """
    return {
        "lat": None,
        "lon": None,
        "heading": None,
        "gpsTimestamp": None,
        "sessionSeconds": 0,
        "speed": None,
        "speedMph": None,
        "speedKph": None,
        "speedKnots": None,
        "speedMin": None,
        "speedMax": None,
        "speedAvg": None,
        "accelCurrent": None,
        "decelCurrent": None,
        "peakAccel": None,
        "peakDecel": None,
        "distanceMeters": 0.0,
        "distanceKm": 0.0,
        "distanceMiles": 0.0,
        "quarterStatus": "Standby",
        "quarterRemaining": None,
        "quarterLast": None,
        "quarterBest": None,
        "zeroSixtyLast": None,
        "zeroSixtyBest": None,
        "updatedAt": now_ms() if updated_at is None else updated_at,
    }


# ============================================================================
# FRAGMENT BUILDERS
# ============================================================================

def speed_fragment(speed: Optional[float]) -> Dict:
    """
    Convert a resolved speed into the speed fields of the snapshot.

    Args:
        speed: Speed in m/s, or None.

    Returns:
        Dictionary with speed, speedMph, speedKph and speedKnots.
    """
    if not utils.is_finite(speed):
        return {"speed": None, "speedMph": None, "speedKph": None, "speedKnots": None}

    speed = float(speed)
    return {
        "speed": speed,
        "speedMph": speed * constants.MPS_TO_MPH,
        "speedKph": speed * constants.MPS_TO_KPH,
        "speedKnots": speed * constants.MPS_TO_KNOTS,
    }


def speed_stats_fragment(stats: Mapping) -> Dict:
    return {
        "speedMin": stats.get("min"),
        "speedMax": stats.get("max"),
        "speedAvg": stats.get("average"),
    }


def acceleration_fragment(view: Mapping) -> Dict:
    return {
        "accelCurrent": utils.finite_or_none(view.get("current")),
        "decelCurrent": utils.finite_or_none(view.get("current_decel")),
        "peakAccel": view.get("peak_accel"),
        "peakDecel": view.get("peak_decel"),
    }


def distance_fragment(total_meters: float) -> Dict:
    return {
        "distanceMeters": total_meters,
        "distanceKm": total_meters / constants.METERS_PER_KM,
        "distanceMiles": total_meters / constants.METERS_PER_MILE,
    }


def quarter_mile_fragment(view: Mapping) -> Dict:
    status = view.get("status")
    return {
        "quarterStatus": getattr(status, "value", status),
        "quarterRemaining": view.get("remaining_m"),
        "quarterLast": view.get("last_time"),
        "quarterBest": view.get("best_time"),
    }


def zero_sixty_fragment(view: Mapping) -> Dict:
    return {
        "zeroSixtyLast": view.get("last_time"),
        "zeroSixtyBest": view.get("best_time"),
    }


# ============================================================================
# DISPLAY BRIDGE
# ============================================================================

class DisplayBridge:
    """
    Fan-out of telemetry snapshots to external display consumers.

    Each consumer is a callable receiving a message envelope
    ``{"type": "telemetry", "payload": snapshot}``. A failing consumer is
    logged and skipped; delivery to the others continues.
    """

    def __init__(self):
        self._consumers: List = []

    def register(self, consumer: Callable[[Dict], None], label: str = "Custom Display") -> None:
        if not callable(consumer):
            raise TypeError("Display consumer must be callable")
        self._consumers.append((label, consumer))
        logger.info("Registered display %r", label)

    def unregister(self, consumer: Callable[[Dict], None]) -> None:
        self._consumers = [(label, c) for label, c in self._consumers if c != consumer]

    def labels(self) -> List[str]:
        return [label for label, _ in self._consumers]

    def __len__(self) -> int:
        return len(self._consumers)

    def broadcast(self, snapshot: Mapping) -> int:
        """
        Send a snapshot to every registered consumer.

        Args:
            snapshot: Immutable telemetry snapshot.

        Returns:
            Number of consumers the snapshot was delivered to.
        """
        if not self._consumers:
            return 0

        delivered = 0
        for label, consumer in list(self._consumers):
            try:
                consumer({"type": "telemetry", "payload": snapshot})
                delivered += 1
            except Exception:
                logger.warning("Unable to send telemetry to display %r", label, exc_info=True)
        return delivered


class SnapshotHistory:
    """
    Display consumer that records every broadcast snapshot.

    Keeps at most ``max_entries`` snapshots, dropping the oldest first.
    """

    def __init__(self, max_entries: int = constants.HISTORY_MAX_ENTRIES):
        self._entries = deque(maxlen=max_entries)

    def __call__(self, message: Mapping) -> None:
        if message.get("type") == "telemetry":
            self._entries.append(dict(message["payload"]))

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[Dict]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


# ============================================================================
# SNAPSHOT ASSEMBLER
# ============================================================================

class SnapshotAssembler:
    """
    Single writer of the telemetry record.

    Fragments are merged last-writer-wins; every merge stamps ``updatedAt``
    and broadcasts a deep-copied, read-only snapshot.
    """

    def __init__(self, bridge: Optional[DisplayBridge] = None,
                 clock: Callable[[], int] = now_ms):
        self.bridge = bridge if bridge is not None else DisplayBridge()
        self.clock = clock
        self._state = default_snapshot(clock())

    def push(self, update) -> Optional[Mapping]:
        """
        Merge a partial update into the telemetry record and broadcast it.

        Args:
            update: Mapping of snapshot fields. Anything else is ignored.

        Returns:
            The new snapshot, or None if the update was ignored.
        """
        if not isinstance(update, Mapping):
            return None

        self._state.update(update)
        self._state["updatedAt"] = self.clock()
        snapshot = self.snapshot()
        self.bridge.broadcast(snapshot)
        return snapshot

    def get(self, field: str):
        return self._state.get(field)

    def snapshot(self) -> Mapping:
        return MappingProxyType(copy.deepcopy(self._state))
