"""
Data models for the rule engine.

Defines parameters, conditions, schedules, and profiles.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from autoprofile.core.bus import Event


ParameterValue = str | int | float

# Immutable parameter name -> current value mapping. Absent key = unknown.
Snapshot = Mapping[str, ParameterValue]


def make_snapshot(values: Optional[Mapping[str, Any]] = None) -> Snapshot:
    """Freeze a parameter mapping into a read-only snapshot.

    None values are dropped, so an unknown parameter is always absent.
    """
    return MappingProxyType({k: v for k, v in (values or {}).items() if v is not None})


# =============================================================================
# Enums
# =============================================================================


class Operator(Enum):
    """Comparison operators usable in a condition."""

    IS = "is"  # Equality on enumerated domains
    IS_NOT = "is_not"  # Inequality on enumerated domains
    BELOW = "below"  # Strict less-than on numeric domains
    ABOVE = "above"  # Strict greater-than on numeric domains

    @property
    def is_numeric(self) -> bool:
        return self in (Operator.BELOW, Operator.ABOVE)


class ParameterKind(Enum):
    """Shape of a parameter's value domain."""

    ENUM = "enum"
    NUMERIC = "numeric"


# =============================================================================
# Parameters
# =============================================================================


@dataclass(frozen=True)
class ParameterDefinition:
    """A monitored environment signal and its value domain.

    Attributes:
        name: Parameter key as it appears in snapshots and rules.
        label: Human-readable label.
        kind: Enumerated or numeric domain.
        values: Allowed values for enumerated parameters.
        minimum: Lower bound (inclusive) for numeric parameters.
        maximum: Upper bound (inclusive) for numeric parameters.
    """

    name: str
    label: str
    kind: ParameterKind = ParameterKind.ENUM
    values: Tuple[str, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None


PARAMETERS: Dict[str, ParameterDefinition] = {
    "external_display": ParameterDefinition(
        name="external_display",
        label="External Display",
        values=("connected", "not_connected"),
    ),
    "power_source": ParameterDefinition(
        name="power_source",
        label="Power Source",
        values=("ac", "battery"),
    ),
    "lid_state": ParameterDefinition(
        name="lid_state",
        label="Lid State",
        values=("open", "closed"),
    ),
    "battery_level": ParameterDefinition(
        name="battery_level",
        label="Battery Level",
        kind=ParameterKind.NUMERIC,
        minimum=0,
        maximum=100,
    ),
}


@dataclass(frozen=True)
class ParameterChanged:
    """A parameter-change notification delivered to the auto-manager."""

    name: str
    value: Optional[ParameterValue]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_event(self, source: str = "detector") -> Event:
        """Wrap as a bus event."""
        return Event(
            type="parameter.changed",
            source=source,
            parameter=self.name,
            payload={"value": self.value},
            timestamp=self.timestamp,
        )

    @classmethod
    def from_event(cls, event: Event) -> "ParameterChanged":
        """Unwrap a parameter.changed bus event."""
        if event.type != "parameter.changed" or not event.parameter:
            raise ValueError(f"Not a parameter change event: {event.type}")
        return cls(
            name=event.parameter,
            value=event.payload.get("value"),
            timestamp=event.timestamp,
        )


# =============================================================================
# Conditions & Schedules
# =============================================================================


@dataclass(frozen=True)
class Condition:
    """A single parameter-operator-value test."""

    param: str
    op: Operator
    value: ParameterValue

    def to_dict(self) -> Dict[str, Any]:
        return {"param": self.param, "op": self.op.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        """Parse a stored condition.

        Raises:
            ValueError: If the record is not a mapping, or names an unknown operator
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Condition must be an object, got {type(data).__name__}")
        try:
            op = Operator(data.get("op"))
        except ValueError:
            raise ValueError(f"Unknown operator: {data.get('op')!r}") from None
        return cls(param=data.get("param"), op=op, value=data.get("value"))


@dataclass(frozen=True)
class Schedule:
    """Weekly recurring time-of-day window.

    Days are ISO weekdays (1=Monday .. 7=Sunday). Times are "HH:MM" strings.
    A start later than the end is an overnight window spanning midnight.
    Days are kept as given (not deduplicated) so validation can report
    duplicates.
    """

    enabled: bool
    days: Tuple[int, ...]
    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", tuple(self.days))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "days": list(self.days),
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Schedule":
        if not isinstance(data, Mapping):
            raise ValueError(f"Schedule must be an object, got {type(data).__name__}")
        days = data.get("days") or ()
        if not isinstance(days, (list, tuple)):
            raise ValueError("Schedule days must be a list")
        return cls(
            enabled=data.get("enabled", False),
            days=tuple(days),
            start_time=data.get("start_time", ""),
            end_time=data.get("end_time", ""),
        )


# =============================================================================
# Profile
# =============================================================================


@dataclass(frozen=True)
class Profile:
    """A named bundle of target settings plus optional activation rules.

    Consists of:
    - id: Unique, stable identifier
    - name: Display name
    - rules: Conditions, combined with AND
    - schedule: Optional weekly window
    - target: Settings to apply (opaque to the rule engine)
    """

    id: str
    name: str
    rules: Tuple[Condition, ...] = ()
    schedule: Optional[Schedule] = None
    target: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def has_enabled_schedule(self) -> bool:
        return self.schedule is not None and self.schedule.enabled is True

    @property
    def is_auto_managed(self) -> bool:
        """True if the profile can ever activate on its own."""
        return bool(self.rules) or self.has_enabled_schedule

    @property
    def specificity(self) -> int:
        """Rule count plus one for an enabled schedule (recomputed on access)."""
        return len(self.rules) + (1 if self.has_enabled_schedule else 0)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the canonical stored record."""
        return {
            "id": self.id,
            "name": self.name,
            "target": dict(self.target),
            "rules": [c.to_dict() for c in self.rules],
            "schedule": self.schedule.to_dict() if self.schedule else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Profile":
        """Deserialize a canonical stored record.

        Raises:
            ValueError: If the record is structurally unusable
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Profile must be an object, got {type(data).__name__}")

        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ValueError("Profile rules must be a list")

        schedule_data = data.get("schedule")
        target = data.get("target") or {}
        if not isinstance(target, Mapping):
            raise ValueError("Profile target must be an object")

        return cls(
            id=data.get("id"),
            name=data.get("name"),
            rules=tuple(Condition.from_dict(r) for r in rules),
            schedule=Schedule.from_dict(schedule_data) if schedule_data is not None else None,
            target=dict(target),
        )


# =============================================================================
# Validation
# =============================================================================


@dataclass
class ValidationResult:
    """Outcome of structural or conflict validation."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failed(cls, *errors: str) -> "ValidationResult":
        return cls(valid=False, errors=list(errors))

    @property
    def error(self) -> Optional[str]:
        """First error, if any."""
        return self.errors[0] if self.errors else None
