"""
Position Fix Normalization for the GPS Speedometer Telemetry Engine

This module validates raw position fixes, as delivered by a position source,
and converts them into canonical GeoSample records.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from . import utils
from .errors import InvalidSample


@dataclass(frozen=True)
class GeoSample:
    """
    One accepted position fix.

    Attributes:
        latitude: Latitude in degrees, within [-90, 90].
        longitude: Longitude in degrees, within [-180, 180].
        timestamp_s: Fix time in seconds since the epoch.
        speed: Sensor-reported instantaneous speed in m/s, or None.
        heading: Heading in degrees within [0, 360), or None when unavailable.
    """

    latitude: float
    longitude: float
    timestamp_s: float
    speed: Optional[float] = None
    heading: Optional[float] = None


def normalize_fix(raw: Mapping) -> GeoSample:
    """
    Validate a raw position fix and build a GeoSample from it.

    The raw fix uses the position-source field names: ``latitude``,
    ``longitude``, ``timestamp`` (epoch milliseconds) and the optional
    ``speed`` (m/s) and ``heading`` (degrees). Missing or non-finite speed and
    heading map to None; heading is never defaulted to 0.

    Args:
        raw: Mapping with the raw fix fields.

    Returns:
        The normalized GeoSample.

    Raises:
        InvalidSample: If coordinates or time are missing, non-finite or
            out of range.
    """
    if not isinstance(raw, Mapping):
        raise InvalidSample(f"Position fix must be a mapping, got {type(raw).__name__}")

    latitude = utils.safe_float(raw.get("latitude"))
    longitude = utils.safe_float(raw.get("longitude"))
    timestamp_ms = utils.safe_float(raw.get("timestamp"))

    if not (utils.is_finite(latitude) and utils.is_finite(longitude)):
        raise InvalidSample(f"Non-finite coordinates: lat={latitude!r}, lon={longitude!r}")
    if not utils.is_finite(timestamp_ms):
        raise InvalidSample(f"Non-finite timestamp: {timestamp_ms!r}")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidSample(f"Latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidSample(f"Longitude out of range: {longitude}")

    return GeoSample(
        latitude=float(latitude),
        longitude=float(longitude),
        timestamp_s=float(timestamp_ms) / 1000.0,
        speed=utils.finite_or_none(utils.safe_float(raw.get("speed"))),
        heading=utils.normalize_heading(utils.safe_float(raw.get("heading"))),
    )
