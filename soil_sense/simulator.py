"""
Sensor simulation: bounded random walks over correlated soil readings.

The generator owns a single mutable SensorState and advances it one step at a
time. A separate seeding variant uses wider steps to backfill a plausible
history when none exists yet.
"""
import copy
import logging
from dataclasses import dataclass, fields, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np

from .config import STORAGE, DEFAULT_CROP

log = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _num(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


# ─────────────────────────────────────────────────────────────────────────────
# WALK TABLES
# ─────────────────────────────────────────────────────────────────────────────

class WalkSpec(NamedTuple):
    step: float
    low: float
    high: float


VARIABLES = ("moisture", "ph", "n", "p", "k", "temperature", "humidity")

LIVE_WALK: Dict[str, WalkSpec] = {
    "moisture":    WalkSpec(3,   0,   100),
    "ph":          WalkSpec(0.2, 3.5, 9.5),
    "n":           WalkSpec(4,   0,   100),
    "p":           WalkSpec(3,   0,   100),
    "k":           WalkSpec(3,   0,   100),
    "temperature": WalkSpec(1,   10,  45),
    "humidity":    WalkSpec(2,   20,  100),
}

# Wider steps, narrower clamps: plausible 60h backfill
SEED_WALK: Dict[str, WalkSpec] = {
    "moisture":    WalkSpec(4,    20, 95),
    "ph":          WalkSpec(0.25, 4,  9),
    "n":           WalkSpec(5,    10, 95),
    "p":           WalkSpec(4,    10, 90),
    "k":           WalkSpec(4,    10, 90),
    "temperature": WalkSpec(1.2,  12, 42),
    "humidity":    WalkSpec(3,    25, 98),
}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def random_walk(current: float, step: float, low: float, high: float, rng: np.random.Generator) -> float:
    """One bounded random-walk step, rounded to 2 decimals."""
    delta = float(rng.uniform(-step, step))
    return clamp(round(current + delta, 2), low, high)


# ─────────────────────────────────────────────────────────────────────────────
# DATA MODEL
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SensorReading:
    """One snapshot of all sensor variables plus pump state and metadata."""
    moisture: Optional[float]      # %
    ph: Optional[float]
    n: Optional[float]             # mg/kg
    p: Optional[float]             # mg/kg
    k: Optional[float]             # mg/kg
    temperature: Optional[float]   # °C
    humidity: Optional[float]      # %
    timestamp: datetime
    crop: str = DEFAULT_CROP
    pump_on: bool = False
    last_watered: Optional[datetime] = None
    last_water_duration: int = 0   # minutes

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = to_iso(self.timestamp)
        d["last_watered"] = to_iso(self.last_watered)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorReading":
        """Rebuild a reading from its JSON form; absent numeric fields become None."""
        timestamp = parse_iso(data.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"Reading has no valid timestamp: {data.get('timestamp')!r}")
        duration = _num(data.get("last_water_duration"))
        return cls(
            **{name: _num(data.get(name)) for name in VARIABLES},
            timestamp=timestamp,
            crop=str(data.get("crop") or DEFAULT_CROP),
            pump_on=_flag(data.get("pump_on")),
            last_watered=parse_iso(data.get("last_watered")),
            last_water_duration=int(duration) if duration is not None else 0,
        )


@dataclass
class SensorState:
    """The single mutable current reading. Plain values only."""
    moisture: float = 58.0
    ph: float = 6.8
    n: float = 52.0
    p: float = 38.0
    k: float = 45.0
    temperature: float = 27.4
    humidity: float = 61.0
    pump_on: bool = False
    last_watered: Optional[datetime] = None
    last_water_duration: int = 0

    def snapshot(self, timestamp: datetime, crop: str) -> SensorReading:
        return SensorReading(
            **{f.name: getattr(self, f.name) for f in fields(self)},
            timestamp=timestamp,
            crop=crop,
        )


# ─────────────────────────────────────────────────────────────────────────────
# GENERATOR
# ─────────────────────────────────────────────────────────────────────────────

class RandomWalkGenerator:
    """Owns the current SensorState and advances it by bounded random walks."""

    def __init__(self, state: Optional[SensorState] = None, rng: Optional[np.random.Generator] = None,
                 walk: Optional[Dict[str, WalkSpec]] = None):
        self.state = state if state is not None else SensorState()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.walk = walk or LIVE_WALK

    def step(self) -> SensorState:
        """Advance every continuous variable in place and return the state."""
        for name in VARIABLES:
            spec = self.walk[name]
            setattr(self.state, name, random_walk(getattr(self.state, name), spec.step, spec.low, spec.high, self.rng))
        return self.state

    def seed_readings(self, crop: str, now: Optional[datetime] = None,
                      points: int = STORAGE.seed_points,
                      spacing_minutes: int = STORAGE.seed_spacing_minutes) -> List[SensorReading]:
        """
        Walk a copy of the current state with the seeding table.

        Returns `points` readings, oldest first, the last one stamped `now`.
        The owned state is left untouched.
        """
        now = now or utc_now()
        seed_state = copy.copy(self.state)
        readings = []
        for i in range(points - 1, -1, -1):
            for name in VARIABLES:
                spec = SEED_WALK[name]
                setattr(seed_state, name, random_walk(getattr(seed_state, name), spec.step, spec.low, spec.high, self.rng))
            readings.append(SensorReading(
                **{name: getattr(seed_state, name) for name in VARIABLES},
                timestamp=now - timedelta(minutes=i * spacing_minutes),
                crop=crop,
            ))
        return readings
