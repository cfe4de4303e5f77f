"""
Constants for the GPS Speedometer Telemetry Engine

This module defines the physical constants, run-detection thresholds, unit
conversion factors and persistence paths used throughout the engine.
"""

from pathlib import Path

# Geodesy
EARTH_RADIUS_M = 6371000.0  # Mean Earth radius used by the haversine formula

# Performance runs
QUARTER_MILE_M = 402.336
ZERO_TO_SIXTY_TARGET_MPS = 26.8224  # 60 mph in m/s

QUARTER_MILE_ARM_SPEED_MPS = 1.0
QUARTER_MILE_ABORT_SPEED_MPS = 0.5
ZERO_TO_SIXTY_STOP_SPEED_MPS = 0.5

# Unit conversions
MPS_TO_MPH = 2.236936
MPS_TO_KPH = 3.6
MPS_TO_KNOTS = 1.943844
METERS_PER_KM = 1000.0
METERS_PER_MILE = 1609.344

# Persistence
STORAGE_PREFIX = "wb_speedometer_"
SPEED_STATS_KEY = "speed_stats"
ACCELERATION_KEY = "acceleration"
DISTANCE_KEY = "distance"
QUARTER_MILE_KEY = "quartermile"
ZERO_TO_SIXTY_KEY = "zero_sixty"

# State folder is one level up from speedometer/
STATE_DIR = Path(__file__).parent.parent / "state"
DEFAULT_STATE_FILE = STATE_DIR / "speedometer_state.json"

# Session timing
SESSION_TICK_S = 1.0
FIX_TIMEOUT_S = 10.0  # Nominal upper bound between fixes in high accuracy mode

# Snapshot history kept for export
HISTORY_MAX_ENTRIES = 10000
