"""
Utility Functions for the GPS Speedometer Telemetry Engine

This module provides helper functions for numeric conversion, finiteness
checks and heading normalization used throughout the telemetry pipeline.
"""

import numpy as np
from typing import Optional


def safe_float(value) -> float:
    """
    Safely convert a value to float, returning NaN on failure.

    Args:
        value: Value to convert (string, number, None, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    if value is None or isinstance(value, bool):
        return np.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def is_finite(value) -> bool:
    """
    Check whether a value is a real, finite number.

    None, booleans, strings, NaN and +/-Inf are all rejected.

    Args:
        value: Value to check.

    Returns:
        True if value is an int or float that is neither NaN nor infinite.
    """
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return bool(np.isfinite(value))


def finite_or_none(value) -> Optional[float]:
    """
    Return value as a plain float when finite, otherwise None.

    Args:
        value: Value to check.

    Returns:
        Float value, or None for missing and non-finite values.
    """
    if not is_finite(value):
        return None
    return float(value)


def normalize_heading(value) -> Optional[float]:
    """
    Wrap a heading in degrees into the [0, 360) range.

    Args:
        value: Heading in degrees, possibly negative or above 360.

    Returns:
        Normalized heading, or None if the heading is missing or non-finite.
    """
    if not is_finite(value):
        return None
    return float(((value % 360) + 360) % 360)
