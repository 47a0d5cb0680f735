"""Tests for built-in profile presets."""

from datetime import datetime

from autoprofile.profiles import (
    default_profiles,
    docked_profile,
    is_builtin_profile,
    travel_profile,
)
from autoprofile.rules import evaluate, make_snapshot, validate_profile

NOW = datetime(2025, 1, 13, 10, 0)


class TestPresets:
    """Tests for the built-in profiles."""

    def test_default_order(self):
        assert [p.id for p in default_profiles()] == ["docked", "travel"]

    def test_presets_are_valid(self):
        for profile in default_profiles():
            assert validate_profile(profile).valid

    def test_docked_targets(self):
        profile = docked_profile(power_mode="balanced")
        assert profile.target == {"power_mode": "balanced", "battery_mode": "max-lifespan"}
        assert profile.specificity == 1

    def test_travel_custom_id(self):
        assert travel_profile("road").id == "road"

    def test_is_builtin(self):
        assert is_builtin_profile("docked")
        assert not is_builtin_profile("desk")

    def test_docked_activates_with_display(self):
        snapshot = make_snapshot({"external_display": "connected", "power_source": "ac"})
        assert evaluate(default_profiles(), snapshot, NOW).id == "docked"

    def test_travel_activates_on_battery(self):
        snapshot = make_snapshot({"external_display": "not_connected", "power_source": "battery"})
        assert evaluate(default_profiles(), snapshot, NOW).id == "travel"

    def test_list_order_decides_when_both_match(self):
        """Test docked wins on battery with a display, being listed first."""
        snapshot = make_snapshot({"external_display": "connected", "power_source": "battery"})
        assert evaluate(default_profiles(), snapshot, NOW).id == "docked"
