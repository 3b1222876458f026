"""Tests for the rule-based recommendation engine and display classifiers."""
import pytest

from soil_sense.profiles import get_profile
from soil_sense.recommendations import (
    Severity, classify, format_value, get_alerts, moisture_color, npk_level, ph_category,
)

from conftest import make_reading

RICE = get_profile("rice")


def by_category(recs):
    return {r.category: r for r in recs}


class TestClassify:
    def test_low_moisture_on_rice(self):
        recs = classify(make_reading(moisture=40), RICE)
        assert len(recs) == 6
        assert recs[0].category == "Irrigation"
        assert recs[0].severity is Severity.CRITICAL
        assert recs[0].message == "Soil moisture is critically low – Immediately irrigate the field."
        assert all(r.severity is Severity.HEALTHY for r in recs[1:])

    def test_heat_stress_has_no_overall_entry(self):
        recs = classify(make_reading(temperature=45), RICE)
        cats = by_category(recs)
        assert "Overall" not in cats
        assert cats["Temperature"].severity is Severity.CRITICAL
        assert cats["Temperature"].message == "Temperature is dangerously high (45.0°C) – Protect crops with shade nets."

    def test_all_healthy_puts_overall_first(self):
        recs = classify(make_reading(), RICE)
        assert len(recs) == 7
        assert recs[0].category == "Overall"
        assert recs[0].icon == "🌟"
        assert recs[0].message == "All soil conditions are healthy for Rice. Your farm is in great shape!"
        assert [r.category for r in recs[1:]] == [
            "Irrigation", "Soil pH", "Nitrogen (N)", "Phosphorus (P)", "Potassium (K)", "Temperature",
        ]

    def test_deterministic(self):
        reading = make_reading(moisture=60, ph=7.3, n=90)
        assert classify(reading, RICE) == classify(reading, RICE)

    def test_missing_parameter_skipped(self):
        recs = classify(make_reading(moisture=None), RICE)
        assert "Irrigation" not in by_category(recs)
        assert recs[0].category == "Overall"
        assert len(recs) == 6

    def test_same_reading_differs_by_crop(self):
        reading = make_reading(moisture=50)
        assert by_category(classify(reading, RICE))["Irrigation"].severity is Severity.CRITICAL
        assert by_category(classify(reading, get_profile("wheat")))["Irrigation"].severity is Severity.HEALTHY

    @pytest.mark.parametrize("field, value, category, severity, message", [
        ("moisture", 60, "Irrigation", Severity.WARNING, "Soil moisture is low (60%) – Watering is recommended."),
        ("moisture", 90, "Irrigation", Severity.WARNING, "Soil is waterlogged (90%) – Stop irrigation and ensure drainage."),
        ("ph", 4.9, "Soil pH", Severity.CRITICAL, "Soil is too acidic (pH 4.9) – Apply agricultural lime to raise pH."),
        ("ph", 5.2, "Soil pH", Severity.WARNING, "Soil is mildly acidic (pH 5.2) – Consider adding lime."),
        ("ph", 7.3, "Soil pH", Severity.WARNING, "Soil is mildly alkaline (pH 7.3) – Monitor closely."),
        ("ph", 7.6, "Soil pH", Severity.CRITICAL, "Soil is too alkaline (pH 7.6) – Apply sulfur or acidic fertilizer."),
        ("n", 29, "Nitrogen (N)", Severity.CRITICAL, "Nitrogen level is critically low – Apply urea or ammonium nitrate immediately."),
        ("n", 40, "Nitrogen (N)", Severity.WARNING, "Nitrogen level is low – Apply nitrogen-rich fertilizer (Urea/DAP)."),
        ("n", 85, "Nitrogen (N)", Severity.WARNING, "Excess nitrogen detected – Reduce fertilizer application to avoid burn."),
        ("p", 14, "Phosphorus (P)", Severity.CRITICAL, "Phosphorus is critically low – Apply superphosphate fertilizer."),
        ("p", 20, "Phosphorus (P)", Severity.WARNING, "Phosphorus level is low – Apply DAP or bone meal."),
        ("k", 24, "Potassium (K)", Severity.CRITICAL, "Potassium is critically low – Apply MOP (Muriate of Potash) immediately."),
        ("k", 30, "Potassium (K)", Severity.WARNING, "Potassium level is low – Apply potash fertilizer."),
        ("temperature", 16, "Temperature", Severity.CRITICAL, "Temperature is too low (16.0°C) – Risk of frost damage."),
    ])
    def test_tiers(self, field, value, category, severity, message):
        rec = by_category(classify(make_reading(**{field: value}), RICE))[category]
        assert rec.severity is severity
        assert rec.message == message

    @pytest.mark.parametrize("field, value, category", [
        ("p", 100, "Phosphorus (P)"),
        ("k", 100, "Potassium (K)"),
        ("temperature", 17, "Temperature"),
        ("temperature", 41, "Temperature"),
    ])
    def test_no_tier_fires(self, field, value, category):
        rec = by_category(classify(make_reading(**{field: value}), RICE))[category]
        assert rec.severity is Severity.HEALTHY

    def test_alerts_keep_order(self):
        recs = classify(make_reading(moisture=40, temperature=45, n=40), RICE)
        alerts = get_alerts(recs)
        assert [a.category for a in alerts] == ["Irrigation", "Nitrogen (N)", "Temperature"]

    def test_to_dict(self):
        d = classify(make_reading(moisture=40), RICE)[0].to_dict()
        assert d["severity"] == "critical"
        assert d["param"] == "Moisture"


class TestDisplayClassifiers:
    @pytest.mark.parametrize("value, label, tone", [
        (29, "Low", "red"), (29.99, "Low", "red"), (30, "Medium", "amber"),
        (64, "Medium", "amber"), (65, "High", "green"),
    ])
    def test_npk_level(self, value, label, tone):
        assert npk_level(value) == (label, tone)

    @pytest.mark.parametrize("ph, label", [
        (5.49, "Strongly Acidic"), (5.5, "Acidic"), (6.5, "Neutral"),
        (7.5, "Alkaline"), (8.5, "Strongly Alkaline"),
    ])
    def test_ph_category(self, ph, label):
        assert ph_category(ph).label == label

    @pytest.mark.parametrize("value, colour", [
        (54.9, "red"), (55, "amber"), (65, "green"), (85, "green"), (95, "amber"), (95.1, "red"),
    ])
    def test_moisture_color(self, value, colour):
        assert moisture_color(value, RICE) == colour

    def test_format_value(self):
        assert format_value(None) == "—"
        assert format_value(6.456, 2) == "6.46"
        assert format_value(61.0, 0, "%") == "61%"
