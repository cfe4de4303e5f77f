"""
Error Types for the GPS Speedometer Telemetry Engine

Only ``SensorUnavailable`` is allowed to cross the engine boundary; the other
errors are raised internally and degraded to defaults by their callers.
"""


class SpeedometerError(Exception):
    """Base class for all engine errors."""


class InvalidSample(SpeedometerError, ValueError):
    """A raw position fix has non-finite or out-of-range coordinates or time."""


class SensorUnavailable(SpeedometerError, RuntimeError):
    """The position source cannot be acquired or has failed."""


class PersistenceFailure(SpeedometerError, OSError):
    """A key-value store read or write failed."""
