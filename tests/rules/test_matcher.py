"""Tests for most-specific-wins profile matching."""

import itertools
from datetime import datetime

from autoprofile.rules import (
    Condition,
    Operator,
    Profile,
    Schedule,
    evaluate,
    find_matching_profile,
    is_eligible,
    make_snapshot,
)

# Monday
NOW = datetime(2025, 1, 13, 10, 0)
SATURDAY = datetime(2025, 1, 18, 10, 0)

DISPLAY = Condition("external_display", Operator.IS, "connected")
AC = Condition("power_source", Operator.IS, "ac")
BATTERY = Condition("power_source", Operator.IS, "battery")
LID_OPEN = Condition("lid_state", Operator.IS, "open")

WORK_HOURS = Schedule(enabled=True, days=[1, 2, 3, 4, 5], start_time="09:00", end_time="17:00")
MORNINGS = Schedule(enabled=True, days=[1, 2, 3, 4, 5], start_time="08:00", end_time="12:00")

SNAPSHOT = make_snapshot(
    {"external_display": "connected", "power_source": "ac", "lid_state": "open", "battery_level": 60}
)


def profile(profile_id, rules=(), schedule=None) -> Profile:
    """Helper to build a profile."""
    return Profile(id=profile_id, name=profile_id.title(), rules=rules, schedule=schedule)


class TestEligibility:
    """Tests for is_eligible."""

    def test_manual_profile_never_eligible(self):
        assert not is_eligible(profile("manual"), SNAPSHOT, NOW)

    def test_rules_must_match(self):
        assert is_eligible(profile("desk", [DISPLAY]), SNAPSHOT, NOW)
        assert not is_eligible(profile("travel", [BATTERY]), SNAPSHOT, NOW)

    def test_schedule_must_be_active(self):
        scheduled = profile("work", [DISPLAY], WORK_HOURS)
        assert is_eligible(scheduled, SNAPSHOT, NOW)
        assert not is_eligible(scheduled, SNAPSHOT, SATURDAY)

    def test_schedule_only(self):
        """Test a schedule-only profile is eligible during its window."""
        assert is_eligible(profile("work", schedule=WORK_HOURS), make_snapshot({}), NOW)

    def test_disabled_schedule_is_ignored(self):
        """Test a disabled schedule neither gates nor enables a profile."""
        disabled = Schedule(enabled=False, days=[6], start_time="09:00", end_time="10:00")
        assert is_eligible(profile("desk", [DISPLAY], disabled), SNAPSHOT, NOW)
        assert not is_eligible(profile("idle", schedule=disabled), SNAPSHOT, NOW)


class TestMostSpecificWins:
    """Tests for specificity ordering."""

    def test_more_rules_win(self):
        """Test a two-rule profile beats a one-rule profile."""
        general = profile("desk", [DISPLAY])
        specific = profile("desk_ac", [DISPLAY, AC])

        for profiles in ([general, specific], [specific, general]):
            assert find_matching_profile(profiles, SNAPSHOT, NOW) == specific

    def test_no_match_returns_none(self):
        assert find_matching_profile([profile("travel", [BATTERY])], SNAPSHOT, NOW) is None

    def test_empty_list(self):
        assert find_matching_profile([], SNAPSHOT, NOW) is None

    def test_lower_specificity_never_wins(self):
        """Test over every pair of candidates that the less specific never wins."""
        candidates = [
            profile("a", [DISPLAY]),
            profile("b", [DISPLAY, AC]),
            profile("c", [DISPLAY, AC, LID_OPEN]),
            profile("d", [AC], WORK_HOURS),
            profile("e", schedule=MORNINGS),
            profile("f", [LID_OPEN, AC], MORNINGS),
            profile("g", [BATTERY]),
        ]
        for first, second in itertools.permutations(candidates, 2):
            both_match = is_eligible(first, SNAPSHOT, NOW) and is_eligible(second, SNAPSHOT, NOW)
            if not both_match or first.specificity == second.specificity:
                continue
            lower = min(first, second, key=lambda p: p.specificity)
            assert find_matching_profile([first, second], SNAPSHOT, NOW) != lower


class TestTieBreaks:
    """Tests for equal-specificity tie-breaks."""

    def test_active_schedule_beats_rules_only(self):
        """Test a scheduled profile beats an unscheduled one of equal specificity."""
        scheduled = profile("work", [DISPLAY], WORK_HOURS)
        unscheduled = profile("desk_ac", [DISPLAY, AC])

        for profiles in ([scheduled, unscheduled], [unscheduled, scheduled]):
            assert find_matching_profile(profiles, SNAPSHOT, NOW) == scheduled

    def test_both_scheduled_smaller_id_wins(self):
        """Test two scheduled profiles of equal specificity tie-break by id."""
        first = profile("beta", [DISPLAY], WORK_HOURS)
        second = profile("alpha", [AC], MORNINGS)

        for profiles in ([first, second], [second, first]):
            assert find_matching_profile(profiles, SNAPSHOT, NOW).id == "alpha"

    def test_unscheduled_first_in_list_wins(self):
        """Test list order decides between unscheduled equal profiles."""
        first = profile("zeta", [DISPLAY])
        second = profile("alpha", [AC])

        assert find_matching_profile([first, second], SNAPSHOT, NOW) == first
        assert find_matching_profile([second, first], SNAPSHOT, NOW) == second


class TestEvaluate:
    """Tests for the pure evaluate entry point."""

    def test_idempotent(self):
        """Test repeated evaluation returns the same profile."""
        profiles = [profile("desk", [DISPLAY]), profile("work", [AC], WORK_HOURS)]
        first = evaluate(profiles, SNAPSHOT, NOW)
        second = evaluate(profiles, SNAPSHOT, NOW)
        assert first is not None
        assert first.id == second.id

    def test_active_profile_does_not_change_choice(self):
        """Test the currently applied profile is reporting only."""
        profiles = [profile("desk", [DISPLAY]), profile("desk_ac", [DISPLAY, AC])]
        for active in (None, "desk", "desk_ac", "other"):
            assert evaluate(profiles, SNAPSHOT, NOW, active).id == "desk_ac"

    def test_absent_parameters_block_match(self):
        """Test a profile cannot match on parameters that are unknown."""
        profiles = [profile("desk", [DISPLAY])]
        assert evaluate(profiles, make_snapshot({"power_source": "ac"}), NOW) is None


class TestHelpers:
    """Tests for profile helpers and the pure facade."""

    def test_specificity(self):
        from autoprofile.rules.matcher import specificity

        assert specificity(profile("a", [DISPLAY, AC], WORK_HOURS)) == 3

    def test_is_auto_managed(self):
        from autoprofile.rules.matcher import is_auto_managed

        assert is_auto_managed(profile("a", [DISPLAY]))
        assert not is_auto_managed(profile("manual"))

    def test_has_active_schedule(self):
        from autoprofile.rules.matcher import has_active_schedule

        scheduled = profile("work", schedule=WORK_HOURS)
        assert has_active_schedule(scheduled, NOW)
        assert not has_active_schedule(scheduled, SATURDAY)
        assert not has_active_schedule(profile("a", [DISPLAY]), NOW)

    def test_facade_reexports(self):
        from autoprofile.rules import matcher

        assert matcher.schedule_is_active(WORK_HOURS, NOW)
        assert matcher.seconds_until_next_boundary(WORK_HOURS, NOW) == 7 * 3600
        assert matcher.schedules_overlap(WORK_HOURS, MORNINGS)
        assert matcher.conflict([profile("a", [DISPLAY])], profile("b", [DISPLAY])) is not None
