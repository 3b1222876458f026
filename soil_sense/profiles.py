"""Crop threshold profiles: acceptable sensor ranges per crop."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .config import DEFAULT_CROP

log = logging.getLogger(__name__)


class UnknownCropError(ValueError):
    """Raised when a crop identifier does not name a known profile."""


class CropKey(Enum):
    """Supported crops."""
    RICE = "rice"
    WHEAT = "wheat"
    TOMATO = "tomato"
    COTTON = "cotton"
    MAIZE = "maize"
    SOYBEAN = "soybean"

    @classmethod
    def parse(cls, key: "str | CropKey") -> "CropKey":
        if isinstance(key, cls):
            return key
        try:
            return cls(str(key).strip().lower())
        except ValueError:
            raise UnknownCropError(f"Unknown crop: {key!r}") from None


@dataclass(frozen=True)
class Range:
    min: float
    max: float

    def __post_init__(self):
        if not self.min < self.max:
            raise ValueError(f"Range min {self.min} must be below max {self.max}")

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class CropProfile:
    """Acceptable sensor ranges for one crop."""
    key: CropKey
    name: str
    icon: str
    moisture: Range   # %
    ph: Range
    n: Range          # mg/kg
    p: Range          # mg/kg
    k: Range          # mg/kg
    temp: Range       # °C
    humidity: Range   # %

    def to_dict(self) -> Dict:
        ranges = ("moisture", "ph", "n", "p", "k", "temp", "humidity")
        return {
            "key": self.key.value,
            "name": self.name,
            "icon": self.icon,
            **{r: {"min": getattr(self, r).min, "max": getattr(self, r).max} for r in ranges},
        }


def _profile(key: CropKey, name: str, icon: str, moisture, ph, n, p, k, temp, humidity) -> CropProfile:
    return CropProfile(
        key=key, name=name, icon=icon,
        moisture=Range(*moisture), ph=Range(*ph),
        n=Range(*n), p=Range(*p), k=Range(*k),
        temp=Range(*temp), humidity=Range(*humidity),
    )


# ─────────────────────────────────────────────────────────────────────────────
# PROFILE TABLE
# ─────────────────────────────────────────────────────────────────────────────
#                       moisture    pH          N         P         K         temp      humidity
CROP_PROFILES: Dict[CropKey, CropProfile] = {
    CropKey.RICE:    _profile(CropKey.RICE,    "Rice",    "🌾", (65, 85), (5.5, 7.0), (45, 80), (30, 60), (40, 70), (20, 38), (65, 90)),
    CropKey.WHEAT:   _profile(CropKey.WHEAT,   "Wheat",   "🌿", (45, 65), (6.0, 7.5), (40, 75), (25, 55), (35, 65), (12, 28), (40, 65)),
    CropKey.TOMATO:  _profile(CropKey.TOMATO,  "Tomato",  "🍅", (55, 75), (5.8, 7.0), (50, 80), (35, 65), (45, 75), (18, 32), (50, 75)),
    CropKey.COTTON:  _profile(CropKey.COTTON,  "Cotton",  "☁️", (40, 65), (6.0, 8.0), (35, 70), (25, 50), (40, 70), (20, 38), (40, 70)),
    CropKey.MAIZE:   _profile(CropKey.MAIZE,   "Maize",   "🌽", (50, 75), (5.8, 7.2), (50, 85), (30, 60), (35, 65), (18, 35), (45, 70)),
    CropKey.SOYBEAN: _profile(CropKey.SOYBEAN, "Soybean", "🫘", (45, 70), (6.0, 7.2), (20, 50), (30, 60), (40, 70), (15, 32), (50, 75)),
}


def is_known_crop(key: Optional[str]) -> bool:
    try:
        CropKey.parse(key)
        return True
    except UnknownCropError:
        return False


def get_profile(key: "str | CropKey | None") -> CropProfile:
    """Look up a profile, falling back to the default crop for unknown keys."""
    try:
        return CROP_PROFILES[CropKey.parse(key)]
    except UnknownCropError:
        log.warning(f"Unknown crop {key!r}; using '{DEFAULT_CROP}' profile")
        return CROP_PROFILES[CropKey(DEFAULT_CROP)]
