"""
Automatic irrigation: two-state pump controller with a hysteresis band.

    OFF -> ON   when moisture <  profile.moisture.min - PUMP_ON_MARGIN
    ON  -> OFF  when moisture >= profile.moisture.min + PUMP_OFF_MARGIN

Readings inside the band leave the pump where it is.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np

from .profiles import CropProfile
from .simulator import SensorState, utc_now

log = logging.getLogger(__name__)

PUMP_ON_MARGIN = 5
PUMP_OFF_MARGIN = 8
MIN_WATER_MINUTES = 4
MAX_WATER_MINUTES = 15


class PumpState(Enum):
    OFF = "off"
    ON = "on"


@dataclass
class PumpEvent:
    """A pump transition that fired during an update."""
    new_state: PumpState
    moisture: float
    threshold: float
    timestamp: datetime
    duration_minutes: int = 0


class IrrigationController:
    """Toggles the pump flag of a SensorState from its moisture level."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    @staticmethod
    def pump_state(state: SensorState) -> PumpState:
        return PumpState.ON if state.pump_on else PumpState.OFF

    def update(self, state: SensorState, profile: CropProfile, now: Optional[datetime] = None) -> Optional[PumpEvent]:
        on_below = profile.moisture.min - PUMP_ON_MARGIN
        off_at = profile.moisture.min + PUMP_OFF_MARGIN

        if not state.pump_on and state.moisture < on_below:
            now = now or utc_now()
            state.pump_on = True
            state.last_watered = now
            log.info(f"Pump ON: moisture {state.moisture:.1f}% < {on_below}% ({profile.name})")
            return PumpEvent(PumpState.ON, state.moisture, on_below, now)

        if state.pump_on and state.moisture >= off_at:
            state.pump_on = False
            state.last_water_duration = int(self.rng.integers(MIN_WATER_MINUTES, MAX_WATER_MINUTES + 1))
            log.info(f"Pump OFF: moisture {state.moisture:.1f}% >= {off_at}% "
                     f"after {state.last_water_duration} min")
            return PumpEvent(PumpState.OFF, state.moisture, off_at, now or utc_now(),
                             duration_minutes=state.last_water_duration)

        return None
