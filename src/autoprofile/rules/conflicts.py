"""
Conflict detection between profiles.

Two auto-managed profiles conflict when they could both be eligible at the
same instant with nothing to deterministically separate them. Such a pair
must be rejected when the profile is saved; the matcher never resolves it.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import PARAMETERS, Condition, Operator, ParameterDefinition, ParameterKind, Profile
from .schedule import schedules_overlap

logger = logging.getLogger(__name__)


def rules_identical(first: Sequence[Condition], second: Sequence[Condition]) -> bool:
    """Order-independent rule list equality."""
    return frozenset(first) == frozenset(second)


def _constraint_map(rules: Iterable[Condition]) -> Dict[str, List[Condition]]:
    constraints: Dict[str, List[Condition]] = defaultdict(list)
    for rule in rules:
        constraints[rule.param].append(rule)
    return constraints


def _parameter_satisfiable(
    constraints: Sequence[Condition],
    definition: Optional[ParameterDefinition],
) -> bool:
    """Whether one parameter can take a value meeting every constraint.

    - is/is: same value
    - is/is_not: different values
    - is_not/is_not: some domain value left over (unknown domain = yes)
    - below X/above Y: X > Y
    """
    required = {c.value for c in constraints if c.op is Operator.IS}
    forbidden = {c.value for c in constraints if c.op is Operator.IS_NOT}

    if len(required) > 1 or required & forbidden:
        return False

    if (
        not required
        and forbidden
        and definition is not None
        and definition.kind is ParameterKind.ENUM
        and definition.values
        and all(v in forbidden for v in definition.values)
    ):
        return False

    lower = [c.value for c in constraints if c.op is Operator.ABOVE]
    upper = [c.value for c in constraints if c.op is Operator.BELOW]
    if lower and upper and max(lower) >= min(upper):
        return False

    return True


def rules_could_coexist(
    first: Sequence[Condition],
    second: Sequence[Condition],
    parameters: Mapping[str, ParameterDefinition] = PARAMETERS,
) -> bool:
    """
    Check if some parameter snapshot satisfies both rule sets.

    Only parameters constrained by both sets can rule out a joint match.

    Args:
        first: First rule set
        second: Second rule set
        parameters: Parameter catalog (for enumerated domains)

    Returns:
        True if both rule sets could match simultaneously
    """
    map_a = _constraint_map(first)
    map_b = _constraint_map(second)

    for param in map_a.keys() & map_b.keys():
        if not _parameter_satisfiable(map_a[param] + map_b[param], parameters.get(param)):
            logger.debug(f"Rule sets are exclusive on {param}")
            return False
    return True


def _schedules_collide(first: Profile, second: Profile) -> bool:
    """Schedule-based resolution for two profiles whose rules could both match.

    Exactly one scheduled: the scheduled one always wins during its window.
    Both scheduled: conflict only if the windows overlap.
    Neither scheduled: always a conflict.
    """
    a_scheduled = first.has_enabled_schedule
    b_scheduled = second.has_enabled_schedule

    if a_scheduled and b_scheduled:
        return schedules_overlap(first.schedule, second.schedule)
    if a_scheduled or b_scheduled:
        return False
    return True


def find_rule_conflict(
    profiles: Iterable[Profile],
    candidate: Profile,
    exclude_id: Optional[str] = None,
    parameters: Mapping[str, ParameterDefinition] = PARAMETERS,
) -> Optional[Profile]:
    """
    Find an existing profile that would be ambiguous alongside `candidate`.

    Args:
        profiles: Existing profiles
        candidate: Profile being created or updated
        exclude_id: ID to skip (the profile itself, when editing)
        parameters: Parameter catalog

    Returns:
        The first conflicting profile, or None
    """
    if not candidate.is_auto_managed:
        return None

    for existing in profiles:
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if not existing.is_auto_managed:
            continue

        if rules_identical(existing.rules, candidate.rules):
            if _schedules_collide(existing, candidate):
                logger.debug(f"Profile {candidate.id} duplicates rules of {existing.id}")
                return existing
            continue

        # Different specificity never conflicts: the higher one always wins
        if existing.specificity != candidate.specificity:
            continue

        if rules_could_coexist(existing.rules, candidate.rules, parameters) and _schedules_collide(
            existing, candidate
        ):
            logger.debug(f"Profile {candidate.id} overlaps {existing.id}")
            return existing

    return None


# Name used by the profile store before persisting
conflict = find_rule_conflict
