"""
Run Records for the GPS Speedometer Telemetry Engine

Persisted best/last elapsed times shared by the quarter-mile and
zero-to-sixty detectors.
"""

from dataclasses import dataclass
from typing import Dict, Optional
from . import utils


@dataclass(frozen=True)
class RunRecord:
    best_time: Optional[float] = None
    last_time: Optional[float] = None

    def record(self, elapsed: float) -> "RunRecord":
        """
        Record a completed run.

        The best time only moves down; a tie keeps the existing best.
        """
        best = elapsed if self.best_time is None or elapsed < self.best_time else self.best_time
        return RunRecord(best_time=best, last_time=elapsed)

    def to_dict(self) -> Dict:
        return {"best_time": self.best_time, "last_time": self.last_time}

    @classmethod
    def from_dict(cls, data: Dict) -> "RunRecord":
        best = utils.finite_or_none(data.get("best_time"))
        last = utils.finite_or_none(data.get("last_time"))
        return cls(
            best_time=best if best is not None and best > 0 else None,
            last_time=last if last is not None and last > 0 else None,
        )


RUN_RECORD_DEFAULTS = {"best_time": None, "last_time": None}
