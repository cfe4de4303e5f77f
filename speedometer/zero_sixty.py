"""
Zero-to-Sixty Run Detection for the GPS Speedometer Telemetry Engine

A four-phase cycle: the detector arms once the vehicle is near standstill,
starts timing when it moves off, records the elapsed time when 60 mph is
reached, and cools down until the vehicle stops again.
"""

import enum
import logging
from typing import Dict, Optional, Tuple
from . import constants
from . import storage
from . import utils
from .runs import RUN_RECORD_DEFAULTS, RunRecord

logger = logging.getLogger(__name__)


class ZeroSixtyPhase(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"
    COOLDOWN = "cooldown"


def update_zero_sixty(record: RunRecord, phase, start_time: Optional[float],
                      speed: Optional[float], timestamp: Optional[float],
                      target_speed: float = constants.ZERO_TO_SIXTY_TARGET_MPS,
                      stop_speed: float = constants.ZERO_TO_SIXTY_STOP_SPEED_MPS
                      ) -> Tuple[RunRecord, ZeroSixtyPhase, Optional[float]]:
    """
    Advance the zero-to-sixty detector by one fix.

    Transitions are only evaluated when both speed and timestamp are finite:
    - idle -> armed when speed <= stop_speed
    - armed -> running when speed > stop_speed, recording the start time
    - running -> cooldown when speed >= target_speed, recording the run;
      an invalid elapsed time discards the attempt back to idle
    - running -> armed when speed falls back to <= stop_speed
    - cooldown -> armed when speed falls to <= stop_speed
    Any unrecognised phase resets to idle.

    Args:
        record: Persisted best/last times.
        phase: Current phase.
        start_time: Time the current attempt started, or None.
        speed: Resolved speed in m/s, or None.
        timestamp: Fix time in seconds, or None.
        target_speed: Target speed in m/s. Default 60 mph.
        stop_speed: Near-standstill speed in m/s. Default 0.5.

    Returns:
        Tuple of (new_record, new_phase, new_start_time).
    """
    if not (utils.is_finite(speed) and utils.is_finite(timestamp)):
        return record, phase, start_time

    if phase is ZeroSixtyPhase.IDLE:
        if speed <= stop_speed:
            return record, ZeroSixtyPhase.ARMED, start_time

    elif phase is ZeroSixtyPhase.ARMED:
        if speed > stop_speed:
            return record, ZeroSixtyPhase.RUNNING, float(timestamp)

    elif phase is ZeroSixtyPhase.RUNNING:
        if speed >= target_speed:
            elapsed = timestamp - start_time if start_time is not None else None
            if utils.is_finite(elapsed) and elapsed > 0:
                return record.record(float(elapsed)), ZeroSixtyPhase.COOLDOWN, start_time
            return record, ZeroSixtyPhase.IDLE, None
        if speed <= stop_speed:
            return record, ZeroSixtyPhase.ARMED, start_time

    elif phase is ZeroSixtyPhase.COOLDOWN:
        if speed <= stop_speed:
            return record, ZeroSixtyPhase.ARMED, start_time

    else:
        return record, ZeroSixtyPhase.IDLE, start_time

    return record, phase, start_time


class ZeroSixtyTracker:
    """Zero-to-sixty detector with best-effort persistence of run times."""

    def __init__(self, kv_store=None, key: str = constants.ZERO_TO_SIXTY_KEY):
        self.kv_store = kv_store
        self.key = key
        self.record = RunRecord.from_dict(storage.load_state(kv_store, key, RUN_RECORD_DEFAULTS))
        self.phase = ZeroSixtyPhase.IDLE
        self.start_time: Optional[float] = None

    def update(self, speed: Optional[float], timestamp: Optional[float]) -> Dict:
        previous_phase = self.phase
        self.record, self.phase, self.start_time = update_zero_sixty(
            self.record, self.phase, self.start_time, speed, timestamp
        )
        if self.phase is ZeroSixtyPhase.COOLDOWN and previous_phase is ZeroSixtyPhase.RUNNING:
            logger.info("0-60 mph completed in %.2f s (best %.2f s)",
                        self.record.last_time, self.record.best_time)
            storage.persist_state(self.kv_store, self.key, self.record.to_dict())
        return self.get()

    def reset(self) -> Dict:
        self.record = RunRecord()
        self.clear_run()
        storage.persist_state(self.kv_store, self.key, self.record.to_dict())
        return self.get()

    def clear_run(self) -> None:
        self.phase = ZeroSixtyPhase.IDLE
        self.start_time = None

    def get(self) -> Dict:
        return {
            "phase": self.phase,
            "last_time": self.record.last_time,
            "best_time": self.record.best_time,
        }
