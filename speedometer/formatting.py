"""
Readout Formatting for the GPS Speedometer Telemetry Engine

Text renderings of snapshot values, as shown on the speedometer readouts.
Missing or non-finite values render as "--".
"""

import math
from typing import Callable, Dict, Mapping, Optional
from . import constants
from . import utils

PLACEHOLDER = "--"

CARDINALS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW", "N"]


def default_number_formatter(value: float) -> str:
    return f"{value:.2f}"


def format_nullable(value, mapper: Callable[[float], str] = default_number_formatter) -> str:
    if not utils.is_finite(value):
        return PLACEHOLDER
    return mapper(value)


def format_seconds(value: float) -> str:
    return f"{value:.2f} s"


def format_accel(value: float) -> str:
    return f"{value:.2f} m/s^2"


def format_coordinate(value, axis: str) -> str:
    """
    Format a coordinate with a hemisphere suffix, e.g. "51.500000° N".

    Args:
        value: Latitude or longitude in degrees.
        axis: "lat" or "lon".

    Returns:
        Formatted coordinate, or "--" if value is missing.
    """
    if not utils.is_finite(value):
        return PLACEHOLDER
    if axis == "lat":
        suffix = "N" if value >= 0 else "S"
    else:
        suffix = "E" if value >= 0 else "W"
    return f"{abs(value):.6f}° {suffix}"


def heading_to_cardinal(heading: float) -> str:
    # Python rounds halves to even, the readout rounds them up
    index = int(heading / 45 + 0.5)
    return CARDINALS[min(index, len(CARDINALS) - 1)]


def format_heading(value) -> str:
    normalized = utils.normalize_heading(value)
    if normalized is None:
        return PLACEHOLDER
    return f"{normalized:.1f}° {heading_to_cardinal(normalized)}"


def format_clock(total_seconds: int) -> str:
    """
    Format a duration as HH:MM:SS.

    Args:
        total_seconds: Whole seconds, negative values clamp to zero.

    Returns:
        Zero-padded clock string.
    """
    total_seconds = max(0, int(total_seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_distance(total_meters: float) -> str:
    km = total_meters / constants.METERS_PER_KM
    miles = total_meters / constants.METERS_PER_MILE
    return f"{km:.2f} km / {miles:.2f} mi"


def format_quarter_status(status: str, remaining_m: Optional[float] = None) -> str:
    if status == "Running" and utils.is_finite(remaining_m) and remaining_m > 0:
        return f"Running ({remaining_m:.1f} m left)"
    return status


def mirror_speed(value) -> str:
    """Whole-number speed for the mirrored head-up readout."""
    if not utils.is_finite(value):
        return PLACEHOLDER
    return str(math.floor(value + 0.5))


def build_readouts(snapshot: Mapping) -> Dict[str, str]:
    """
    Render every readout of a telemetry snapshot as text.

    Args:
        snapshot: Telemetry snapshot from SnapshotAssembler.snapshot().

    Returns:
        Dictionary mapping readout names to display strings.
    """
    return {
        "lat": format_coordinate(snapshot.get("lat"), "lat"),
        "lon": format_coordinate(snapshot.get("lon"), "lon"),
        "heading": format_heading(snapshot.get("heading")),
        "speed": format_nullable(snapshot.get("speed")),
        "speedMph": format_nullable(snapshot.get("speedMph")),
        "speedKph": format_nullable(snapshot.get("speedKph")),
        "speedKnots": format_nullable(snapshot.get("speedKnots")),
        "mirrorKph": mirror_speed(snapshot.get("speedKph")),
        "mirrorMph": mirror_speed(snapshot.get("speedMph")),
        "speedMin": format_nullable(snapshot.get("speedMin")),
        "speedMax": format_nullable(snapshot.get("speedMax")),
        "speedAvg": format_nullable(snapshot.get("speedAvg")),
        "accel": format_nullable(snapshot.get("accelCurrent"), format_accel),
        "decel": format_nullable(snapshot.get("decelCurrent"), format_accel),
        "peakAccel": format_nullable(snapshot.get("peakAccel"), format_accel),
        "peakDecel": format_nullable(snapshot.get("peakDecel"), format_accel),
        "distanceTotal": format_distance(snapshot.get("distanceMeters") or 0.0),
        "sessionDuration": format_clock(snapshot.get("sessionSeconds") or 0),
        "quarterStatus": format_quarter_status(snapshot.get("quarterStatus") or "Standby",
                                               snapshot.get("quarterRemaining")),
        "quarterLast": format_nullable(snapshot.get("quarterLast"), format_seconds),
        "quarterBest": format_nullable(snapshot.get("quarterBest"), format_seconds),
        "zeroSixtyLast": format_nullable(snapshot.get("zeroSixtyLast"), format_seconds),
        "zeroSixtyBest": format_nullable(snapshot.get("zeroSixtyBest"), format_seconds),
    }
