"""
Condition evaluators for the rule engine.

Unknown or malformed parameter values never satisfy a condition, so an
unobserved signal can never trigger an automatic switch.
"""

import logging
import math
from typing import Any, Callable, Dict, Optional, Sequence

from .models import Condition, Operator, Snapshot

logger = logging.getLogger(__name__)


def as_number(value: Any) -> Optional[float]:
    """Coerce a snapshot or rule value to a finite float, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _below(actual: Any, expected: Any) -> bool:
    a, e = as_number(actual), as_number(expected)
    if a is None or e is None:
        logger.warning(f"Non-numeric comparison: {actual!r} below {expected!r}")
        return False
    return a < e


def _above(actual: Any, expected: Any) -> bool:
    a, e = as_number(actual), as_number(expected)
    if a is None or e is None:
        logger.warning(f"Non-numeric comparison: {actual!r} above {expected!r}")
        return False
    return a > e


OPERATORS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.IS: lambda actual, expected: actual == expected,
    Operator.IS_NOT: lambda actual, expected: actual != expected,
    Operator.BELOW: _below,
    Operator.ABOVE: _above,
}


def evaluate_condition(condition: Condition, snapshot: Snapshot) -> bool:
    """
    Evaluate a single condition against a parameter snapshot.

    Args:
        condition: The condition to evaluate
        snapshot: Current parameter values

    Returns:
        True if the condition holds; False if it does not, or if the
        parameter is absent/unknown
    """
    actual = snapshot.get(condition.param)
    if actual is None:
        return False

    check = OPERATORS.get(condition.op)
    if check is None:
        logger.warning(f"Unknown operator: {condition.op!r}")
        return False

    return check(actual, condition.value)


def evaluate_rules(rules: Sequence[Condition], snapshot: Snapshot) -> bool:
    """
    Evaluate a rule list (AND logic).

    An empty rule list never matches: a profile without rules cannot
    activate through rule matching alone.

    Args:
        rules: Conditions to evaluate
        snapshot: Current parameter values

    Returns:
        True if there is at least one rule and ALL rules hold
    """
    if not rules:
        return False

    for condition in rules:
        if not evaluate_condition(condition, snapshot):
            logger.debug(f"Condition not met: {condition}")
            return False
    return True
