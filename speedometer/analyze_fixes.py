"""
GPS Speedometer Telemetry Engine

This module derives live performance telemetry from a stream of GPS fixes:
speed and its statistics, acceleration with peak tracking, cumulative
distance, and quarter-mile and 0-60 mph run times.

This file serves as the single import point for the entry points and
re-exports the public functions and classes of the individual modules.
"""

# Import constants
from .constants import (
    DEFAULT_STATE_FILE,
    QUARTER_MILE_M,
    SESSION_TICK_S,
    ZERO_TO_SIXTY_TARGET_MPS,
)

# Import errors
from .errors import (
    InvalidSample,
    PersistenceFailure,
    SensorUnavailable,
    SpeedometerError,
)

# Import sample normalization
from .samples import (
    GeoSample,
    normalize_fix,
)

# Import persistence
from .storage import (
    JsonFileStore,
    MemoryStore,
    load_state,
    persist_state,
)

# Import metrics functions
from .metrics import (
    DistanceStore,
    compute_travel_delta,
    haversine_m,
    resolve_speed,
)

# Import accumulators and run detectors
from .speed_stats import SpeedStatsStore
from .acceleration import AccelerationStore
from .quarter_mile import QuarterMileStatus, QuarterMileTracker
from .zero_sixty import ZeroSixtyPhase, ZeroSixtyTracker

# Import telemetry functions
from .telemetry import (
    DisplayBridge,
    SnapshotAssembler,
    SnapshotHistory,
    default_snapshot,
)

# Import readout formatting
from .formatting import (
    build_readouts,
    format_clock,
)

# Import data loading and export functions
from .data_loading import (
    FixLogSource,
    load_fix_log,
)
from .export import (
    export_history_csv,
    export_snapshot_json,
)

# Import session controller
from .session import TelemetrySession

__all__ = [
    # Constants
    "DEFAULT_STATE_FILE",
    "QUARTER_MILE_M",
    "SESSION_TICK_S",
    "ZERO_TO_SIXTY_TARGET_MPS",
    # Errors
    "InvalidSample",
    "PersistenceFailure",
    "SensorUnavailable",
    "SpeedometerError",
    # Samples
    "GeoSample",
    "normalize_fix",
    # Persistence
    "JsonFileStore",
    "MemoryStore",
    "load_state",
    "persist_state",
    # Metrics
    "DistanceStore",
    "compute_travel_delta",
    "haversine_m",
    "resolve_speed",
    # Accumulators
    "SpeedStatsStore",
    "AccelerationStore",
    "QuarterMileStatus",
    "QuarterMileTracker",
    "ZeroSixtyPhase",
    "ZeroSixtyTracker",
    # Telemetry
    "DisplayBridge",
    "SnapshotAssembler",
    "SnapshotHistory",
    "default_snapshot",
    # Formatting
    "build_readouts",
    "format_clock",
    # Data loading & export
    "FixLogSource",
    "load_fix_log",
    "export_history_csv",
    "export_snapshot_json",
    # Session
    "TelemetrySession",
]
