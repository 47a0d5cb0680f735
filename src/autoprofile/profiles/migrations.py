"""
Schema migrations for stored profile records.

The store keeps a separate integer schema version. Records written by older
versions are upgraded step by step before the rule engine ever sees them.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 6

Record = Dict[str, Any]

_DERIVED_FIELDS = ("icon", "builtin", "autoManaged", "auto_managed", "forceDischarge", "force_discharge")

_LEGACY_TARGET_KEYS = {
    "powerMode": "power_mode",
    "power_mode": "power_mode",
    "batteryMode": "battery_mode",
    "battery_mode": "battery_mode",
}

_LEGACY_SCHEDULE_KEYS = {"startTime": "start_time", "endTime": "end_time"}


def _ensure_rules(records: List[Record], defaults: List[Record]) -> bool:
    changed = False
    for record in records:
        if not isinstance(record.get("rules"), list):
            record["rules"] = []
            changed = True
    return changed


def _ensure_schedule(records: List[Record], defaults: List[Record]) -> bool:
    changed = False
    for record in records:
        if "schedule" not in record:
            record["schedule"] = None
            changed = True
    return changed


def _seed_defaults(records: List[Record], defaults: List[Record]) -> bool:
    # Only a fresh install (empty store) gets seeded
    if records:
        return False
    records.extend(copy.deepcopy(defaults))
    return bool(defaults)


def _move_target_fields(records: List[Record], defaults: List[Record]) -> bool:
    changed = False
    for record in records:
        target = record.get("target")
        if not isinstance(target, dict):
            target = {}
        for legacy, key in _LEGACY_TARGET_KEYS.items():
            if legacy in record:
                target.setdefault(key, record.pop(legacy))
                changed = True
        if record.get("target") is not target:
            record["target"] = target
            changed = True
    return changed


def _strip_derived_fields(records: List[Record], defaults: List[Record]) -> bool:
    changed = False
    for record in records:
        for name in _DERIVED_FIELDS:
            if name in record:
                del record[name]
                changed = True
        schedule = record.get("schedule")
        if isinstance(schedule, dict):
            for legacy, key in _LEGACY_SCHEDULE_KEYS.items():
                if legacy in schedule:
                    schedule.setdefault(key, schedule.pop(legacy))
                    changed = True
    return changed


# (target version, step) in application order
MIGRATIONS: List[Tuple[int, Callable[[List[Record], List[Record]], bool]]] = [
    (2, _ensure_rules),
    (3, _ensure_schedule),
    (4, _seed_defaults),
    (5, _move_target_fields),
    (6, _strip_derived_fields),
]


def migrate_records(
    records: List[Record],
    from_version: int,
    defaults: Optional[List[Record]] = None,
) -> Tuple[List[Record], bool]:
    """
    Upgrade stored profile records to CURRENT_SCHEMA_VERSION.

    Args:
        records: Raw stored records (not modified)
        from_version: Schema version the records were written with
        defaults: Built-in profile records for seeding an empty store

    Returns:
        (migrated records, whether any step changed something)
    """
    migrated = copy.deepcopy([r for r in records if isinstance(r, dict)])
    if len(migrated) != len(records):
        logger.warning(f"Dropped {len(records) - len(migrated)} non-object profile records")

    changed = False
    for version, step in MIGRATIONS:
        if from_version < version and step(migrated, defaults or []):
            logger.info(f"Applied profile migration to v{version} ({step.__name__})")
            changed = True

    return migrated, changed
