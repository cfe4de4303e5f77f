"""
Speed Statistics for the GPS Speedometer Telemetry Engine

Running minimum, maximum and average over every resolved speed. The average
is always derived from the stored count and total rather than kept as an
incremental mean.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from . import constants
from . import storage
from . import utils


@dataclass(frozen=True)
class SpeedStats:
    count: int = 0
    total: float = 0.0
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def average(self) -> Optional[float]:
        if self.count <= 0:
            return None
        return self.total / self.count

    def view(self) -> Dict:
        return {"min": self.min, "max": self.max, "average": self.average}

    def to_dict(self) -> Dict:
        return {"count": self.count, "total": self.total, "min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: Dict) -> "SpeedStats":
        count = data.get("count")
        if not isinstance(count, int) or count < 0:
            return cls()
        return cls(
            count=count,
            total=utils.finite_or_none(data.get("total")) or 0.0,
            min=utils.finite_or_none(data.get("min")),
            max=utils.finite_or_none(data.get("max")),
        )


def update_speed_stats(stats: SpeedStats, speed: Optional[float]) -> Tuple[SpeedStats, bool]:
    """
    Fold one resolved speed into the statistics.

    Args:
        stats: Current statistics.
        speed: Resolved speed in m/s; None and non-finite values are ignored.

    Returns:
        Tuple of (new_stats, changed).
    """
    if not utils.is_finite(speed):
        return stats, False

    speed = float(speed)
    return replace(
        stats,
        count=stats.count + 1,
        total=stats.total + speed,
        min=speed if stats.min is None else min(stats.min, speed),
        max=speed if stats.max is None else max(stats.max, speed),
    ), True


class SpeedStatsStore:
    """Speed statistics accumulator with best-effort persistence."""

    defaults = {"count": 0, "total": 0.0, "min": None, "max": None}

    def __init__(self, kv_store=None, key: str = constants.SPEED_STATS_KEY):
        self.kv_store = kv_store
        self.key = key
        self.state = SpeedStats.from_dict(storage.load_state(kv_store, key, self.defaults))

    def update(self, speed: Optional[float]) -> Dict:
        self.state, changed = update_speed_stats(self.state, speed)
        if changed:
            storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.get()

    def reset(self) -> Dict:
        self.state = SpeedStats()
        storage.persist_state(self.kv_store, self.key, self.state.to_dict())
        return self.get()

    def get(self) -> Dict:
        return self.state.view()
