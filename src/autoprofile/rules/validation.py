"""
Structural validation for profiles, rules, and schedules.

Validators return a ValidationResult and never raise on user data.
"""

import re
from collections import defaultdict
from typing import Any, Dict, List, Mapping

from .models import (
    PARAMETERS,
    Condition,
    Operator,
    ParameterDefinition,
    ParameterKind,
    Profile,
    Schedule,
    ValidationResult,
)
from .evaluators import as_number
from .schedule import parse_time

MAX_NAME_LENGTH = 50

_PROFILE_ID_RE = re.compile(r"^[a-z0-9_-]+$")


def is_valid_profile_id(profile_id: Any) -> bool:
    """Lowercase alphanumerics, hyphens and underscores only."""
    return isinstance(profile_id, str) and bool(_PROFILE_ID_RE.match(profile_id))


def validate_condition(
    condition: Any,
    parameters: Mapping[str, ParameterDefinition] = PARAMETERS,
) -> ValidationResult:
    """
    Validate a single condition against the parameter catalog.

    Args:
        condition: Condition to check
        parameters: Parameter catalog

    Returns:
        ValidationResult with at most one error
    """
    if not isinstance(condition, Condition):
        return ValidationResult.failed("Invalid condition object")

    if not condition.param or not isinstance(condition.param, str):
        return ValidationResult.failed("Missing or invalid parameter")

    if not isinstance(condition.op, Operator):
        return ValidationResult.failed(f"Unknown operator: {condition.op}")

    if condition.value is None:
        return ValidationResult.failed("Missing value")

    definition = parameters.get(condition.param)
    if definition is None:
        return ValidationResult.failed(f"Unknown parameter: {condition.param}")

    if definition.kind is ParameterKind.NUMERIC:
        if not condition.op.is_numeric:
            return ValidationResult.failed(
                f'Operator "{condition.op.value}" does not apply to numeric parameter '
                f'"{condition.param}"'
            )
        number = as_number(condition.value)
        if number is None or isinstance(condition.value, str):
            return ValidationResult.failed(
                f'Invalid value "{condition.value}" for parameter "{condition.param}"'
            )
        if (definition.minimum is not None and number < definition.minimum) or (
            definition.maximum is not None and number > definition.maximum
        ):
            return ValidationResult.failed(
                f'Value {condition.value} out of range for parameter "{condition.param}" '
                f"({definition.minimum}-{definition.maximum})"
            )
        return ValidationResult.ok()

    if condition.op.is_numeric:
        return ValidationResult.failed(
            f'Operator "{condition.op.value}" does not apply to parameter "{condition.param}"'
        )
    if condition.value not in definition.values:
        return ValidationResult.failed(
            f'Invalid value "{condition.value}" for parameter "{condition.param}"'
        )
    return ValidationResult.ok()


def validate_rules(
    rules: Any,
    parameters: Mapping[str, ParameterDefinition] = PARAMETERS,
) -> ValidationResult:
    """
    Validate a complete rule list.

    Reports per-rule errors, duplicate parameter/operator pairs, and
    contradictions that can never be satisfied.

    Args:
        rules: Sequence of conditions (None = no rules)
        parameters: Parameter catalog

    Returns:
        ValidationResult listing every problem found
    """
    if rules is None:
        return ValidationResult.ok()

    if not isinstance(rules, (list, tuple)):
        return ValidationResult.failed("Rules must be a list")

    errors: List[str] = []
    seen = set()

    for index, rule in enumerate(rules, start=1):
        result = validate_condition(rule, parameters)
        if not result.valid:
            errors.append(f"Rule {index}: {result.error}")
            continue
        key = (rule.param, rule.op)
        if key in seen:
            errors.append(f"Rule {index}: Duplicate condition for {rule.param}")
        seen.add(key)

    if errors:
        return ValidationResult(valid=False, errors=errors)

    by_param: Dict[str, List[Condition]] = defaultdict(list)
    for rule in rules:
        by_param[rule.param].append(rule)

    for param, constraints in by_param.items():
        is_values = [c.value for c in constraints if c.op is Operator.IS]
        is_not_values = [c.value for c in constraints if c.op is Operator.IS_NOT]
        for value in is_values:
            if value in is_not_values:
                errors.append(
                    f'Contradictory rules for {param}: "is {value}" and "is not {value}" '
                    f"can never both be true"
                )

        above = [c.value for c in constraints if c.op is Operator.ABOVE]
        below = [c.value for c in constraints if c.op is Operator.BELOW]
        if above and below and max(above) >= min(below):
            errors.append(
                f'Contradictory rules for {param}: "above {max(above)}" and '
                f'"below {min(below)}" leave no possible value'
            )

    return ValidationResult(valid=not errors, errors=errors)


def validate_schedule(schedule: Any) -> ValidationResult:
    """Validate a schedule's structure (days, times, distinct start/end)."""
    if not isinstance(schedule, Schedule):
        return ValidationResult.failed("Invalid schedule object")

    if not isinstance(schedule.enabled, bool):
        return ValidationResult.failed("Schedule must have an enabled flag")

    if not schedule.days:
        return ValidationResult.failed("Schedule must have at least one day")

    for day in schedule.days:
        if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 7:
            return ValidationResult.failed("Invalid day: must be 1 (Monday) through 7 (Sunday)")

    if len(set(schedule.days)) != len(schedule.days):
        return ValidationResult.failed("Duplicate days in schedule")

    if not isinstance(schedule.start_time, str) or not schedule.start_time:
        return ValidationResult.failed("Start time is required")

    if not isinstance(schedule.end_time, str) or not schedule.end_time:
        return ValidationResult.failed("End time is required")

    start = parse_time(schedule.start_time)
    if start is None:
        return ValidationResult.failed("Invalid start time format (expected HH:MM)")

    end = parse_time(schedule.end_time)
    if end is None:
        return ValidationResult.failed("Invalid end time format (expected HH:MM)")

    if start == end:
        return ValidationResult.failed("Start and end time must be different")

    return ValidationResult.ok()


def validate_profile(
    profile: Any,
    parameters: Mapping[str, ParameterDefinition] = PARAMETERS,
) -> ValidationResult:
    """
    Validate a whole profile: id, name, rules, and an enabled schedule.

    A disabled schedule is not validated, so partially filled-in times
    survive edit cycles.

    Args:
        profile: Profile to check
        parameters: Parameter catalog

    Returns:
        ValidationResult aggregating all errors
    """
    if not isinstance(profile, Profile):
        return ValidationResult.failed("Invalid profile object")

    errors: List[str] = []

    if not is_valid_profile_id(profile.id):
        errors.append("Invalid profile ID")

    if not isinstance(profile.name, str) or not profile.name.strip():
        errors.append("Profile name is required")
    elif len(profile.name.strip()) > MAX_NAME_LENGTH:
        errors.append(f"Profile name too long (max {MAX_NAME_LENGTH} characters)")

    errors.extend(validate_rules(profile.rules, parameters).errors)

    if not isinstance(profile.target, Mapping):
        errors.append("Profile target must be an object")

    if profile.schedule is not None:
        if not isinstance(profile.schedule, Schedule):
            errors.append("Invalid schedule object")
        elif profile.schedule.enabled is not False:
            errors.extend(validate_schedule(profile.schedule).errors)

    return ValidationResult(valid=not errors, errors=errors)
