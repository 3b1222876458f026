from datetime import datetime, timezone

import numpy as np
import pytest

from soil_sense.service import SoilDataService
from soil_sense.simulator import SensorReading
from soil_sense.storage import MemoryStore

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FixedRng:
    """Stands in for numpy's Generator, always drawing the same extreme."""

    def __init__(self, sign: int = 1, integer: int = 4):
        self.sign = sign
        self.integer = integer

    def uniform(self, low, high):
        return high if self.sign > 0 else low

    def integers(self, low, high):
        return self.integer


def make_reading(timestamp=NOW, crop="rice", **values) -> SensorReading:
    base = dict(moisture=75.0, ph=6.25, n=62.0, p=45.0, k=55.0, temperature=29.0, humidity=77.0)
    base.update(values)
    return SensorReading(**base, timestamp=timestamp, crop=crop)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store):
    return SoilDataService(store, rng=np.random.default_rng(7), clock=lambda: NOW)
