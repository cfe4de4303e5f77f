"""
Quarter-Mile Run Detection for the GPS Speedometer Telemetry Engine

This module times quarter-mile runs from the live fix stream. A run arms on
any sustained motion (speed at or above the arming threshold), so it measures
rolling quarter-miles rather than standing starts. A run completes once the
distance covered since arming reaches 402.336 m and is abandoned if the
vehicle slows to near standstill first.
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from . import constants
from . import storage
from . import utils
from .runs import RUN_RECORD_DEFAULTS, RunRecord

logger = logging.getLogger(__name__)


class QuarterMileStatus(enum.Enum):
    STANDBY = "Standby"
    RUNNING = "Running"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class QuarterMileRun:
    """
    Transient state of the detector; never persisted.

    Attributes:
        armed_at_distance: Cumulative distance when the run armed, or None.
        armed_at_time: Fix time when the run armed, or None.
        status: Current run status.
        remaining_m: Distance still to cover while running, or None.
    """

    armed_at_distance: Optional[float] = None
    armed_at_time: Optional[float] = None
    status: QuarterMileStatus = QuarterMileStatus.STANDBY
    remaining_m: Optional[float] = None

    @property
    def is_armed(self) -> bool:
        return self.armed_at_distance is not None


def should_arm_run(speed: Optional[float],
                   arm_speed: float = constants.QUARTER_MILE_ARM_SPEED_MPS) -> bool:
    return utils.is_finite(speed) and speed >= arm_speed


def update_quarter_mile(record: RunRecord, run: QuarterMileRun, total_distance: float,
                        speed: Optional[float], timestamp: float,
                        threshold_m: float = constants.QUARTER_MILE_M,
                        arm_speed: float = constants.QUARTER_MILE_ARM_SPEED_MPS,
                        abort_speed: float = constants.QUARTER_MILE_ABORT_SPEED_MPS
                        ) -> Tuple[RunRecord, QuarterMileRun]:
    """
    Advance the quarter-mile detector by one fix.

    Transitions:
    - Standby -> Running when not armed and speed >= arm_speed. Arming records
      the baseline and completion is not evaluated on the same fix.
    - Running -> Completed when the distance covered since arming reaches
      threshold_m. A valid elapsed time updates the record; an invalid one
      discards the run back to Standby.
    - Running -> Standby when speed drops below abort_speed before completion.

    Args:
        record: Persisted best/last times.
        run: Transient detector state.
        total_distance: Cumulative session distance in meters.
        speed: Resolved speed in m/s, or None.
        timestamp: Fix time in seconds.
        threshold_m: Run distance. Default one quarter mile.
        arm_speed: Arming speed in m/s. Default 1.0.
        abort_speed: Abandon speed in m/s. Default 0.5.

    Returns:
        Tuple of (new_record, new_run).
    """
    if not run.is_armed and should_arm_run(speed, arm_speed):
        return record, QuarterMileRun(
            armed_at_distance=total_distance,
            armed_at_time=timestamp,
            status=QuarterMileStatus.RUNNING,
        )

    if not run.is_armed:
        return record, QuarterMileRun()

    covered = total_distance - run.armed_at_distance
    if covered >= threshold_m:
        elapsed = timestamp - run.armed_at_time
        if utils.is_finite(elapsed) and elapsed > 0:
            return record.record(float(elapsed)), QuarterMileRun(status=QuarterMileStatus.COMPLETED)
        return record, QuarterMileRun()

    if utils.is_finite(speed) and speed < abort_speed:
        return record, QuarterMileRun()

    remaining = threshold_m - covered
    return record, replace(
        run,
        status=QuarterMileStatus.RUNNING,
        remaining_m=remaining if remaining > 0 else None,
    )


class QuarterMileTracker:
    """Quarter-mile detector with best-effort persistence of run times."""

    def __init__(self, kv_store=None, key: str = constants.QUARTER_MILE_KEY):
        self.kv_store = kv_store
        self.key = key
        self.record = RunRecord.from_dict(storage.load_state(kv_store, key, RUN_RECORD_DEFAULTS))
        self.run = QuarterMileRun()

    def update(self, total_distance: float, speed: Optional[float], timestamp: float) -> Dict:
        self.record, self.run = update_quarter_mile(self.record, self.run, total_distance,
                                                    speed, timestamp)
        if self.run.status is QuarterMileStatus.COMPLETED:
            logger.info("Quarter mile completed in %.2f s (best %.2f s)",
                        self.record.last_time, self.record.best_time)
            storage.persist_state(self.kv_store, self.key, self.record.to_dict())
        return self.get()

    def reset(self) -> Dict:
        self.record = RunRecord()
        self.run = QuarterMileRun()
        storage.persist_state(self.kv_store, self.key, self.record.to_dict())
        return self.get()

    def clear_run(self) -> None:
        self.run = QuarterMileRun()

    def get(self) -> Dict:
        return {
            "status": self.run.status,
            "remaining_m": self.run.remaining_m,
            "last_time": self.record.last_time,
            "best_time": self.record.best_time,
        }
