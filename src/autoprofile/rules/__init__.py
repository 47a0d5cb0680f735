"""
Rule engine for auto-profile.

Decides which profile should be active for a parameter snapshot and a
wall-clock instant. Everything here is pure: no I/O, no owned state.

Features:
- Conditions over enumerated (is / is_not) and numeric (below / above) parameters
- Weekly schedules, including overnight windows
- Most-specific-wins matching with deterministic tie-breaks
- Conflict detection that keeps a profile set unambiguous
- Structural validation returning ValidationResult

Architecture:
    ┌──────────────────────────────────────────────┐
    │                 matcher                      │
    │          ┌──────────┴──────────┐             │
    │     evaluators             schedule          │
    │          └──────────┬──────────┘             │
    │                 conflicts                    │
    └──────────────────────────────────────────────┘
"""

from .models import (
    # Types
    ParameterValue,
    Snapshot,
    make_snapshot,
    # Enums
    Operator,
    ParameterKind,
    # Parameters
    ParameterDefinition,
    ParameterChanged,
    PARAMETERS,
    # Profile
    Condition,
    Schedule,
    Profile,
    ValidationResult,
)
from .evaluators import evaluate_condition, evaluate_rules
from .schedule import (
    parse_time,
    time_to_minutes,
    format_time,
    format_days_summary,
    is_schedule_active,
    schedule_is_active,
    schedule_end_time_today,
    seconds_until_next_boundary,
    schedules_overlap,
)
from .conflicts import find_rule_conflict, conflict, rules_could_coexist, rules_identical
from .matcher import (
    find_matching_profile,
    evaluate,
    is_eligible,
    specificity,
    is_auto_managed,
    has_active_schedule,
)
from .validation import (
    is_valid_profile_id,
    validate_condition,
    validate_rules,
    validate_schedule,
    validate_profile,
)

__all__ = [
    # Types
    "ParameterValue",
    "Snapshot",
    "make_snapshot",
    # Enums
    "Operator",
    "ParameterKind",
    # Parameters
    "ParameterDefinition",
    "ParameterChanged",
    "PARAMETERS",
    # Profile
    "Condition",
    "Schedule",
    "Profile",
    "ValidationResult",
    # Evaluators
    "evaluate_condition",
    "evaluate_rules",
    # Schedule
    "parse_time",
    "time_to_minutes",
    "format_time",
    "format_days_summary",
    "is_schedule_active",
    "schedule_is_active",
    "schedule_end_time_today",
    "seconds_until_next_boundary",
    "schedules_overlap",
    # Conflicts
    "find_rule_conflict",
    "conflict",
    "rules_could_coexist",
    "rules_identical",
    # Matcher
    "find_matching_profile",
    "evaluate",
    "is_eligible",
    "specificity",
    "is_auto_managed",
    "has_active_schedule",
    # Validation
    "is_valid_profile_id",
    "validate_condition",
    "validate_rules",
    "validate_schedule",
    "validate_profile",
]
