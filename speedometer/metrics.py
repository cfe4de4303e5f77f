"""
Distance and Speed Metrics for the GPS Speedometer Telemetry Engine

This module computes great-circle distances between consecutive fixes,
accumulates the total distance travelled, and resolves an instantaneous
speed for every fix.
"""

import numpy as np
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from . import constants
from . import storage
from . import utils
from .samples import GeoSample


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula to compute distance along the surface of a sphere.

    Args:
        lat1, lon1: Latitude and longitude of first point in degrees.
        lat2, lon2: Latitude and longitude of second point in degrees.

    Returns:
        Distance in meters between the two points.
    """
    R = constants.EARTH_RADIUS_M
    lat1_rad, lon1_rad = np.deg2rad(lat1), np.deg2rad(lon1)
    lat2_rad, lon2_rad = np.deg2rad(lat2), np.deg2rad(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return float(R * c)


def compute_travel_delta(previous: Optional[GeoSample], current: GeoSample) -> float:
    """
    Distance covered between two consecutive fixes.

    The first fix of a session only establishes the baseline.

    Args:
        previous: Previously accepted sample, or None for the first fix.
        current: Newly accepted sample.

    Returns:
        Distance in meters (0.0 when there is no previous sample).
    """
    if previous is None:
        return 0.0
    return haversine_m(previous.latitude, previous.longitude,
                       current.latitude, current.longitude)


def resolve_speed(raw_speed: Optional[float], delta_m: float,
                  previous: Optional[GeoSample], current: GeoSample) -> Optional[float]:
    """
    Resolve the instantaneous speed for a fix.

    Sensor-reported speed is used verbatim when present. Otherwise the
    secant speed between the previous and current fix is used.

    Args:
        raw_speed: Speed reported by the position source in m/s, or None.
        delta_m: Distance covered since the previous fix in meters.
        previous: Previously accepted sample, or None.
        current: Newly accepted sample.

    Returns:
        Speed in m/s, or None when no speed can be determined (no previous
        fix, zero or negative elapsed time, non-finite distance).
    """
    if utils.is_finite(raw_speed):
        return float(raw_speed)

    if previous is None:
        return None

    dt = current.timestamp_s - previous.timestamp_s
    if not utils.is_finite(dt) or dt <= 0:
        return None

    if not utils.is_finite(delta_m):
        return None

    return float(delta_m) / dt


# ============================================================================
# DISTANCE ACCUMULATOR
# ============================================================================

@dataclass(frozen=True)
class DistanceState:
    total_meters: float = 0.0

    def to_dict(self) -> Dict:
        return {"total": self.total_meters}

    @classmethod
    def from_dict(cls, data: Dict) -> "DistanceState":
        total = data.get("total")
        if not utils.is_finite(total) or total < 0:
            total = 0.0
        return cls(total_meters=float(total))


def update_distance(state: DistanceState, delta_m: float) -> Tuple[DistanceState, bool]:
    """
    Add a per-fix distance increment to the running total.

    Only finite, strictly positive increments are accumulated, which keeps
    the total monotonically non-decreasing.

    Args:
        state: Current distance state.
        delta_m: Distance increment in meters.

    Returns:
        Tuple of (new_state, changed).
    """
    if not utils.is_finite(delta_m) or delta_m <= 0:
        return state, False
    return replace(state, total_meters=state.total_meters + float(delta_m)), True


class DistanceStore:
    """
    Cumulative distance accumulator with best-effort persistence.

    Usage:
        store = DistanceStore(kv_store)
        total = store.update(delta_m)
    """

    defaults = {"total": 0.0}

    def __init__(self, kv_store=None, key: str = constants.DISTANCE_KEY):
        self.kv_store = kv_store
        self.key = key
        self.state = DistanceState.from_dict(storage.load_state(kv_store, key, self.defaults))

    def update(self, delta_m: float) -> float:
        self.state, changed = update_distance(self.state, delta_m)
        if changed:
            storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.state.total_meters

    def reset(self) -> float:
        self.state = DistanceState()
        storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.state.total_meters

    def get(self) -> float:
        return self.state.total_meters
