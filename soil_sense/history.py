"""Bounded, persisted history of sensor readings."""
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

import pandas as pd

from .config import STORAGE
from .simulator import RandomWalkGenerator, SensorReading, VARIABLES, parse_iso, utc_now
from .storage import KeyValueStore

log = logging.getLogger(__name__)


class TimeRange(Enum):
    """Recency windows for history filtering."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"

    @property
    def window(self) -> Optional[timedelta]:
        return {
            TimeRange.DAILY: timedelta(hours=24),
            TimeRange.WEEKLY: timedelta(days=7),
            TimeRange.MONTHLY: timedelta(days=30),
        }.get(self)

    @classmethod
    def parse(cls, value: "str | TimeRange | None") -> "TimeRange":
        """Unrecognised ranges mean no filtering."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.ALL


class HistoryStore:
    """
    Append-only FIFO buffer of readings, written through to a key-value store.

    Insertion order is chronological order; once `max_history` is exceeded the
    oldest entries are evicted.
    """

    def __init__(self, store: KeyValueStore, key: str = STORAGE.history_key,
                 max_history: int = STORAGE.max_history):
        self.store = store
        self.key = key
        self.max_history = max_history

    def _as_list(self, data) -> list:
        if not isinstance(data, list):
            log.warning(f"History under '{self.key}' is not a list; treating as empty")
            return []
        return data

    def _load_raw(self) -> list:
        return self._as_list(self.store.get_json(self.key, []))

    def get_all(self) -> List[SensorReading]:
        readings = []
        for entry in self._load_raw():
            try:
                readings.append(SensorReading.from_dict(entry))
            except (AttributeError, TypeError, ValueError) as e:
                log.warning(f"Dropping malformed history entry: {e}")
        return readings

    def __len__(self) -> int:
        return len(self._load_raw())

    def append(self, reading: SensorReading) -> None:
        self.extend([reading])

    def extend(self, readings: List[SensorReading]) -> None:
        entries = [r.to_dict() for r in readings]

        def add(raw):
            raw = self._as_list(raw) + entries
            return raw[-self.max_history:]

        self.store.update_json(self.key, add, [])

    def latest(self) -> Optional[SensorReading]:
        readings = self.get_all()
        return readings[-1] if readings else None

    def get_filtered(self, range_: "str | TimeRange", now: Optional[datetime] = None) -> List[SensorReading]:
        window = TimeRange.parse(range_).window
        readings = self.get_all()
        if window is None:
            return readings
        now = now or utc_now()
        return [r for r in readings if now - r.timestamp <= window]

    def clear(self) -> None:
        self.store.remove_item(self.key)

    def seed(self, generator: RandomWalkGenerator, crop: str, now: Optional[datetime] = None,
             threshold: int = STORAGE.seed_threshold) -> int:
        """
        Backfill 60h of plausible history unless enough already exists.

        Seeded readings go ahead of any existing entries and end one spacing
        step before the oldest of them, so the buffer stays chronological.
        """
        if len(self) > threshold:
            return 0
        now = now or utc_now()
        seeded: List[SensorReading] = []

        def backfill(raw):
            raw = self._as_list(raw)
            if len(raw) > threshold:
                return raw
            end = now
            stamps = [parse_iso(e.get("timestamp")) for e in raw if isinstance(e, dict)]
            stamps = [ts for ts in stamps if ts is not None]
            if stamps:
                end = min(end, min(stamps) - timedelta(minutes=STORAGE.seed_spacing_minutes))
            seeded.extend(generator.seed_readings(crop, now=end))
            return ([r.to_dict() for r in seeded] + raw)[-self.max_history:]

        self.store.update_json(self.key, backfill, [])
        if seeded:
            log.info(f"Seeded {len(seeded)} history readings for {crop} ending {seeded[-1].timestamp:%Y-%m-%d %H:%M}")
        return len(seeded)

    def to_frame(self, range_: "str | TimeRange" = TimeRange.ALL, now: Optional[datetime] = None) -> pd.DataFrame:
        """History as a DataFrame indexed by timestamp, for charts and analysis."""
        rows = [r.to_dict() for r in self.get_filtered(range_, now=now)]
        columns = ["timestamp", *VARIABLES, "pump_on", "crop"]
        if not rows:
            return pd.DataFrame(columns=columns).set_index("timestamp")
        df = pd.DataFrame(rows)[columns]
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        return df.set_index("timestamp")
