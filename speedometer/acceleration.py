"""
Acceleration Tracking for the GPS Speedometer Telemetry Engine

This module derives longitudinal acceleration as the first difference of
speed over time between consecutive fixes, and keeps peak acceleration and
peak deceleration as high-water marks until an explicit reset.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from . import constants
from . import storage
from . import utils


@dataclass(frozen=True)
class AccelerationState:
    """
    Persisted part of the acceleration tracker.

    Attributes:
        last_speed: Speed of the most recent finite (speed, time) pair, m/s.
        last_time: Time of the most recent finite (speed, time) pair, s.
        peak_accel: Highest positive acceleration seen, m/s^2 (>= 0).
        peak_decel: Highest deceleration magnitude seen, m/s^2 (>= 0).
    """

    last_speed: Optional[float] = None
    last_time: Optional[float] = None
    peak_accel: Optional[float] = None
    peak_decel: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "last_speed": self.last_speed,
            "last_time": self.last_time,
            "peak_accel": self.peak_accel,
            "peak_decel": self.peak_decel,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "AccelerationState":
        peak_accel = utils.finite_or_none(data.get("peak_accel"))
        peak_decel = utils.finite_or_none(data.get("peak_decel"))
        return cls(
            last_speed=utils.finite_or_none(data.get("last_speed")),
            last_time=utils.finite_or_none(data.get("last_time")),
            peak_accel=peak_accel if peak_accel is not None and peak_accel >= 0 else None,
            peak_decel=peak_decel if peak_decel is not None and peak_decel >= 0 else None,
        )


def update_acceleration(state: AccelerationState, speed: Optional[float],
                        timestamp: Optional[float]) -> Tuple[AccelerationState, Optional[float]]:
    """
    Advance the acceleration tracker by one fix.

    Args:
        state: Current tracker state.
        speed: Resolved speed in m/s, or None.
        timestamp: Fix time in seconds, or None.

    Returns:
        Tuple of (new_state, current) where current is the signed
        acceleration in m/s^2, or None when it cannot be computed this tick.
    """
    current = None
    sample_is_finite = utils.is_finite(speed) and utils.is_finite(timestamp)

    if sample_is_finite and state.last_speed is not None and state.last_time is not None:
        dt = timestamp - state.last_time
        if dt > 0:
            current = utils.finite_or_none((speed - state.last_speed) / dt)

    if current is not None and current > 0:
        peak = current if state.peak_accel is None else max(state.peak_accel, current)
        state = replace(state, peak_accel=peak)
    elif current is not None and current < 0:
        magnitude = abs(current)
        peak = magnitude if state.peak_decel is None else max(state.peak_decel, magnitude)
        state = replace(state, peak_decel=peak)

    # Every finite pair becomes the new baseline, computable or not
    if sample_is_finite:
        state = replace(state, last_speed=float(speed), last_time=float(timestamp))

    return state, current


def acceleration_view(state: AccelerationState, current: Optional[float]) -> Dict:
    """
    Build the acceleration readout values.

    ``current_decel`` is the magnitude of a negative reading and 0 for an
    exact zero reading; positive and unknown readings map to None.

    Args:
        state: Tracker state.
        current: Signed acceleration from the latest update, or None.

    Returns:
        Dictionary with current, current_decel, peak_accel, peak_decel.
    """
    if current is None:
        decel = None
    elif current < 0:
        decel = abs(current)
    elif current == 0:
        decel = 0.0
    else:
        decel = None

    return {
        "current": current,
        "current_decel": decel,
        "peak_accel": state.peak_accel,
        "peak_decel": state.peak_decel,
    }


class AccelerationStore:
    """Acceleration tracker with best-effort persistence of peaks and baseline."""

    defaults = {"last_speed": None, "last_time": None, "peak_accel": None, "peak_decel": None}

    def __init__(self, kv_store=None, key: str = constants.ACCELERATION_KEY):
        self.kv_store = kv_store
        self.key = key
        self.state = AccelerationState.from_dict(storage.load_state(kv_store, key, self.defaults))
        self.current: Optional[float] = None

    def update(self, speed: Optional[float], timestamp: Optional[float]) -> Dict:
        previous = self.state
        self.state, self.current = update_acceleration(self.state, speed, timestamp)
        if self.state != previous:
            storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.get()

    def reset(self) -> Dict:
        self.state = AccelerationState()
        self.current = None
        storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.get()

    def get(self) -> Dict:
        return acceleration_view(self.state, self.current)
