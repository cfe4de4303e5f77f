"""Shared builders for the speedometer test-suite."""

from __future__ import annotations


def make_fix(latitude: float, longitude: float, t_seconds: float,
             speed: float | None = None, heading: float | None = None) -> dict:
    """Raw fix as delivered by a position source (timestamp in ms)."""
    return {
        "latitude": latitude,
        "longitude": longitude,
        "timestamp": t_seconds * 1000.0,
        "speed": speed,
        "heading": heading,
    }
