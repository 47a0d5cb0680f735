"""
Built-in profile presets.

Seeded into an empty store on first run, and restored when every stored
record turns out to be unusable.
"""

from typing import List

from autoprofile.rules.models import Condition, Operator, Profile


def docked_profile(
    profile_id: str = "docked",
    *,
    power_mode: str = "performance",
    battery_mode: str = "max-lifespan",
) -> Profile:
    """
    Profile for working at a desk with an external display.

    Activates when an external display is connected.

    Args:
        profile_id: Profile ID
        power_mode: Power mode to apply
        battery_mode: Battery charging mode to apply

    Returns:
        Configured Profile
    """
    return Profile(
        id=profile_id,
        name="Docked",
        rules=(Condition("external_display", Operator.IS, "connected"),),
        target={"power_mode": power_mode, "battery_mode": battery_mode},
    )


def travel_profile(
    profile_id: str = "travel",
    *,
    power_mode: str = "balanced",
    battery_mode: str = "full-capacity",
) -> Profile:
    """
    Profile for running on battery away from a charger.

    Activates when the power source is the battery.
    """
    return Profile(
        id=profile_id,
        name="Travel",
        rules=(Condition("power_source", Operator.IS, "battery"),),
        target={"power_mode": power_mode, "battery_mode": battery_mode},
    )


BUILTIN_PROFILE_IDS = frozenset({"docked", "travel"})


def default_profiles() -> List[Profile]:
    """The built-in profiles, in their default order."""
    return [docked_profile(), travel_profile()]


def is_builtin_profile(profile_id: str) -> bool:
    return profile_id in BUILTIN_PROFILE_IDS
