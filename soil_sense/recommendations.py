"""
Rule-based agronomic recommendations.

Turns a reading plus a crop profile into an ordered list of categorized
advisories, and provides small display classifiers (NPK level, pH category,
moisture colour).
"""
import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

from .profiles import CropProfile
from .simulator import SensorReading

log = logging.getLogger(__name__)

MISSING = "—"


class Severity(Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def is_alert(self) -> bool:
        return self is not Severity.HEALTHY


@dataclass(frozen=True)
class Recommendation:
    severity: Severity
    icon: str
    category: str
    message: str
    param: str

    def to_dict(self) -> Dict[str, str]:
        d = asdict(self)
        d["severity"] = self.severity.value
        return d


def _rec(severity: Severity, icon: str, category: str, message: str, param: str) -> Recommendation:
    return Recommendation(severity, icon, category, message, param)


# ─────────────────────────────────────────────────────────────────────────────
# PER-PARAMETER CHECKS
# ─────────────────────────────────────────────────────────────────────────────

def check_moisture(v: float, p: CropProfile) -> Recommendation:
    cat, param = "Irrigation", "Moisture"
    if v < p.moisture.min - 10:
        return _rec(Severity.CRITICAL, "💧", cat, "Soil moisture is critically low – Immediately irrigate the field.", param)
    if v < p.moisture.min:
        return _rec(Severity.WARNING, "🚿", cat, f"Soil moisture is low ({v:.0f}%) – Watering is recommended.", param)
    if v > p.moisture.max:
        return _rec(Severity.WARNING, "⚠️", cat, f"Soil is waterlogged ({v:.0f}%) – Stop irrigation and ensure drainage.", param)
    return _rec(Severity.HEALTHY, "✅", cat, f"Soil moisture is optimal ({v:.0f}%) – No irrigation needed.", param)


def check_ph(v: float, p: CropProfile) -> Recommendation:
    cat, param = "Soil pH", "pH"
    if v < p.ph.min - 0.5:
        return _rec(Severity.CRITICAL, "🧪", cat, f"Soil is too acidic (pH {v:.1f}) – Apply agricultural lime to raise pH.", param)
    if v < p.ph.min:
        return _rec(Severity.WARNING, "🍋", cat, f"Soil is mildly acidic (pH {v:.1f}) – Consider adding lime.", param)
    if v > p.ph.max + 0.5:
        return _rec(Severity.CRITICAL, "🧪", cat, f"Soil is too alkaline (pH {v:.1f}) – Apply sulfur or acidic fertilizer.", param)
    if v > p.ph.max:
        return _rec(Severity.WARNING, "⚗️", cat, f"Soil is mildly alkaline (pH {v:.1f}) – Monitor closely.", param)
    return _rec(Severity.HEALTHY, "✅", cat, f"Soil pH is ideal ({v:.1f}) for {p.name}.", param)


def check_nitrogen(v: float, p: CropProfile) -> Recommendation:
    cat, param = "Nitrogen (N)", "N"
    if v < p.n.min - 15:
        return _rec(Severity.CRITICAL, "🌿", cat, "Nitrogen level is critically low – Apply urea or ammonium nitrate immediately.", param)
    if v < p.n.min:
        return _rec(Severity.WARNING, "🌱", cat, "Nitrogen level is low – Apply nitrogen-rich fertilizer (Urea/DAP).", param)
    if v > p.n.max:
        return _rec(Severity.WARNING, "⚠️", cat, "Excess nitrogen detected – Reduce fertilizer application to avoid burn.", param)
    return _rec(Severity.HEALTHY, "✅", cat, "Nitrogen level is adequate – No action required.", param)


def check_phosphorus(v: float, p: CropProfile) -> Recommendation:
    # no high-side tier
    cat, param = "Phosphorus (P)", "P"
    if v < p.p.min - 15:
        return _rec(Severity.CRITICAL, "🌻", cat, "Phosphorus is critically low – Apply superphosphate fertilizer.", param)
    if v < p.p.min:
        return _rec(Severity.WARNING, "🌼", cat, "Phosphorus level is low – Apply DAP or bone meal.", param)
    return _rec(Severity.HEALTHY, "✅", cat, "Phosphorus level is good – No supplementation needed.", param)


def check_potassium(v: float, p: CropProfile) -> Recommendation:
    # no high-side tier
    cat, param = "Potassium (K)", "K"
    if v < p.k.min - 15:
        return _rec(Severity.CRITICAL, "🍃", cat, "Potassium is critically low – Apply MOP (Muriate of Potash) immediately.", param)
    if v < p.k.min:
        return _rec(Severity.WARNING, "🌾", cat, "Potassium level is low – Apply potash fertilizer.", param)
    return _rec(Severity.HEALTHY, "✅", cat, "Potassium level is healthy – No action needed.", param)


def check_temperature(v: float, p: CropProfile) -> Recommendation:
    # critical or healthy only
    cat, param = "Temperature", "Temperature"
    if v > p.temp.max + 3:
        return _rec(Severity.CRITICAL, "🌡️", cat, f"Temperature is dangerously high ({v:.1f}°C) – Protect crops with shade nets.", param)
    if v < p.temp.min - 3:
        return _rec(Severity.CRITICAL, "❄️", cat, f"Temperature is too low ({v:.1f}°C) – Risk of frost damage.", param)
    return _rec(Severity.HEALTHY, "✅", cat, f"Temperature is suitable ({v:.1f}°C) for {p.name}.", param)


# Fixed evaluation order: (reading field, check)
CHECKS: List[tuple] = [
    ("moisture", check_moisture),
    ("ph", check_ph),
    ("n", check_nitrogen),
    ("p", check_phosphorus),
    ("k", check_potassium),
    ("temperature", check_temperature),
]


def classify(reading: SensorReading, profile: CropProfile) -> List[Recommendation]:
    """
    Evaluate every parameter check in fixed order.

    A parameter missing from the reading is skipped. When nothing is at
    warning or critical level, an 'Overall' healthy summary is put first.
    """
    recs: List[Recommendation] = []
    for field_name, check in CHECKS:
        value = getattr(reading, field_name, None)
        if value is None:
            log.debug(f"Reading has no '{field_name}'; skipping check")
            continue
        recs.append(check(float(value), profile))

    if not any(r.severity.is_alert for r in recs):
        recs.insert(0, _rec(
            Severity.HEALTHY, "🌟", "Overall",
            f"All soil conditions are healthy for {profile.name}. Your farm is in great shape!",
            "Overall",
        ))
    return recs


def get_alerts(recs: List[Recommendation]) -> List[Recommendation]:
    """Warning and critical advisories, in classification order."""
    return [r for r in recs if r.severity.is_alert]


# ─────────────────────────────────────────────────────────────────────────────
# DISPLAY CLASSIFIERS
# ─────────────────────────────────────────────────────────────────────────────

class Badge(NamedTuple):
    label: str
    tone: str   # red | amber | green


def npk_level(value: float) -> Badge:
    if value < 30:
        return Badge("Low", "red")
    if value < 65:
        return Badge("Medium", "amber")
    return Badge("High", "green")


def ph_category(ph: float) -> Badge:
    if ph < 5.5:
        return Badge("Strongly Acidic", "red")
    if ph < 6.5:
        return Badge("Acidic", "amber")
    if ph < 7.5:
        return Badge("Neutral", "green")
    if ph < 8.5:
        return Badge("Alkaline", "amber")
    return Badge("Strongly Alkaline", "red")


def moisture_color(value: float, profile: CropProfile) -> str:
    r = profile.moisture
    if value < r.min - 10 or value > r.max + 10:
        return "red"
    if value < r.min or value > r.max:
        return "amber"
    return "green"


def format_value(value: Optional[float], digits: int = 1, suffix: str = "") -> str:
    """Render a possibly-absent reading value."""
    if value is None:
        return MISSING
    return f"{value:.{digits}f}{suffix}"
