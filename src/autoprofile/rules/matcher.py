"""
Profile matcher - most-specific-wins selection.

Selection is a pure function of (profiles, snapshot, now). Among eligible
profiles the highest specificity wins. Ties are broken in order:

1. A profile with an active schedule beats one without.
2. Between two profiles with active schedules, the smaller id wins.
3. Otherwise the profile listed first wins, so list order is visible to
   users when two unscheduled profiles of equal specificity both match.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from .conflicts import conflict
from .evaluators import evaluate_rules
from .models import Profile, Snapshot
from .schedule import (
    is_schedule_active,
    schedule_is_active,
    schedules_overlap,
    seconds_until_next_boundary,
)

logger = logging.getLogger(__name__)


def specificity(profile: Profile) -> int:
    """Rule count plus one for an enabled schedule."""
    return profile.specificity


def is_auto_managed(profile: Profile) -> bool:
    return profile.is_auto_managed


def has_active_schedule(profile: Profile, now: datetime) -> bool:
    """Whether the profile has an enabled schedule whose window is open."""
    return profile.has_enabled_schedule and is_schedule_active(profile.schedule, now)


def _outranks(candidate: Profile, best: Profile) -> bool:
    """Whether an eligible candidate displaces the current best."""
    if candidate.specificity != best.specificity:
        return candidate.specificity > best.specificity

    candidate_scheduled = candidate.has_enabled_schedule
    best_scheduled = best.has_enabled_schedule
    if candidate_scheduled != best_scheduled:
        return candidate_scheduled

    if candidate_scheduled:
        return candidate.id < best.id

    # First encountered wins
    return False


def is_eligible(profile: Profile, snapshot: Snapshot, now: datetime) -> bool:
    """Whether a profile could auto-activate right now."""
    if not profile.is_auto_managed:
        return False

    if profile.has_enabled_schedule and not is_schedule_active(profile.schedule, now):
        return False

    if profile.rules and not evaluate_rules(profile.rules, snapshot):
        return False

    return True


def find_matching_profile(
    profiles: Iterable[Profile],
    snapshot: Snapshot,
    now: datetime,
    active_profile_id: Optional[str] = None,
) -> Optional[Profile]:
    """
    Select the single best profile for the current instant.

    Args:
        profiles: Validated profiles in user-visible order
        snapshot: Parameter values taken at the start of evaluation
        now: Wall-clock instant for schedule gating
        active_profile_id: Currently applied profile (reporting only; it
            never influences the choice)

    Returns:
        Best matching profile, or None if nothing is eligible (the caller
        keeps the current profile)
    """
    best: Optional[Profile] = None

    for profile in profiles:
        if not is_eligible(profile, snapshot, now):
            continue
        if best is None or _outranks(profile, best):
            best = profile

    if best is None:
        logger.debug("No profile matches current parameters")
    elif best.id == active_profile_id:
        logger.debug(f"Profile {best.id} matches and is already active")
    else:
        logger.debug(f"Profile {best.id} matches (specificity {best.specificity})")

    return best


# Pure entry points exposed to hosts
evaluate = find_matching_profile

__all__ = [
    "specificity",
    "is_auto_managed",
    "has_active_schedule",
    "is_eligible",
    "find_matching_profile",
    "evaluate",
    "conflict",
    "schedule_is_active",
    "seconds_until_next_boundary",
    "schedules_overlap",
]
