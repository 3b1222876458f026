"""
SoilDataService: the public surface used by the dashboard, API and chat.

Wires the random-walk generator, irrigation controller, history store and
live feed around one explicitly owned sensor state and one key-value store.

Usage:
    from soil_sense.service import SoilDataService
    from soil_sense.storage import JsonFileStore

    service = SoilDataService(JsonFileStore("data/soilsense_store.json"))
    service.seed_history()
    service.on_live_data(lambda r: print(r.moisture))
    service.start_live_data(5000)
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

import numpy as np

from .config import STORAGE, LIVE_FEED, DEFAULT_CROP
from .history import HistoryStore, TimeRange
from .irrigation import IrrigationController
from .live_feed import LiveFeed
from .profiles import CROP_PROFILES, CropKey, CropProfile, get_profile, is_known_crop
from .recommendations import (
    Badge, Recommendation, classify, get_alerts, moisture_color, npk_level, ph_category,
)
from .simulator import RandomWalkGenerator, SensorReading, SensorState, utc_now
from .storage import KeyValueStore, MemoryStore

log = logging.getLogger(__name__)


class SoilDataService:
    """Owns the simulated sensor and exposes readings, history and advice."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        state: Optional[SensorState] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], datetime] = utc_now,
        interval_ms: int = LIVE_FEED.interval_ms,
    ):
        self.store = store if store is not None else MemoryStore()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock
        self.generator = RandomWalkGenerator(state=state, rng=self.rng)
        self.controller = IrrigationController(rng=self.rng)
        self.history = HistoryStore(self.store)
        self.feed = LiveFeed(self.next_reading, self.history.append, interval_ms=interval_ms)

    # ─────────────────────────────────────────────────────────────────────────
    # CROP SELECTION
    # ─────────────────────────────────────────────────────────────────────────

    def get_current_crop(self) -> str:
        crop = self.store.get_item(STORAGE.crop_key)
        if not crop:
            return DEFAULT_CROP
        if not is_known_crop(crop):
            log.warning(f"Stored crop {crop!r} is unknown; using '{DEFAULT_CROP}'")
            return DEFAULT_CROP
        return crop

    def set_current_crop(self, crop_key: str) -> str:
        """Persist the selected crop. Raises UnknownCropError for unknown keys."""
        key = CropKey.parse(crop_key).value
        self.store.set_item(STORAGE.crop_key, key)
        log.info(f"Current crop set to {key}")
        return key

    def current_profile(self) -> CropProfile:
        return get_profile(self.get_current_crop())

    @staticmethod
    def profiles() -> Dict[str, CropProfile]:
        return {key.value: profile for key, profile in CROP_PROFILES.items()}

    # ─────────────────────────────────────────────────────────────────────────
    # READINGS & HISTORY
    # ─────────────────────────────────────────────────────────────────────────

    def get_reading(self) -> SensorReading:
        """Snapshot of the current state, stamped now."""
        return self.generator.state.snapshot(self.clock(), self.get_current_crop())

    def next_reading(self) -> SensorReading:
        """Advance the simulation one step and apply automatic irrigation."""
        self.generator.step()
        now = self.clock()
        self.controller.update(self.generator.state, self.current_profile(), now)
        return self.generator.state.snapshot(now, self.get_current_crop())

    def get_history(self) -> List[SensorReading]:
        return self.history.get_all()

    def get_filtered_history(self, range_: "str | TimeRange") -> List[SensorReading]:
        return self.history.get_filtered(range_, now=self.clock())

    def latest_reading(self) -> Optional[SensorReading]:
        return self.history.latest()

    def seed_history(self) -> int:
        return self.history.seed(self.generator, self.get_current_crop(), now=self.clock())

    # ─────────────────────────────────────────────────────────────────────────
    # RECOMMENDATIONS
    # ─────────────────────────────────────────────────────────────────────────

    def get_recommendations(self, reading: SensorReading, crop_key: Optional[str] = None) -> List[Recommendation]:
        return classify(reading, get_profile(crop_key or self.get_current_crop()))

    def get_alerts(self, reading: SensorReading, crop_key: Optional[str] = None) -> List[Recommendation]:
        return get_alerts(self.get_recommendations(reading, crop_key))

    @staticmethod
    def npk_level(value: float) -> Badge:
        return npk_level(value)

    @staticmethod
    def ph_category(ph: float) -> Badge:
        return ph_category(ph)

    @staticmethod
    def moisture_color(value: float, profile: CropProfile) -> str:
        return moisture_color(value, profile)

    # ─────────────────────────────────────────────────────────────────────────
    # LIVE DATA
    # ─────────────────────────────────────────────────────────────────────────

    def on_live_data(self, callback: Callable[[SensorReading], None]) -> None:
        self.feed.subscribe(callback)

    def start_live_data(self, interval_ms: Optional[int] = None) -> None:
        self.feed.start(interval_ms)

    def stop_live_data(self) -> None:
        self.feed.stop()
