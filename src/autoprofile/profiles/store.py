"""
Profile store: loading, caching, validating and persisting profiles.

The ProfileRepository owns the profile list, not the matching behavior.
Raw storage lives behind a ProfileBackend so the host platform decides
where the serialized JSON goes.
"""

import dataclasses
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from autoprofile.rules.conflicts import find_rule_conflict
from autoprofile.rules.models import PARAMETERS, ParameterDefinition, Profile, ValidationResult
from autoprofile.rules.validation import validate_profile

from .migrations import CURRENT_SCHEMA_VERSION, migrate_records
from .presets import default_profiles

logger = logging.getLogger(__name__)


class ProfileStore(ABC):
    """
    Read-side interface the auto-manager depends on.

    Implementations return profiles that already passed validation.
    """

    @abstractmethod
    def list(self) -> List[Profile]:
        """Ordered list of validated profiles."""
        pass

    @abstractmethod
    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        pass

    @abstractmethod
    def validate(self, candidate: Profile) -> ValidationResult:
        pass

    @abstractmethod
    def conflict(self, candidate: Profile, exclude_id: Optional[str] = None) -> Optional[Profile]:
        pass


class ProfileBackend(ABC):
    """Raw storage for the serialized profile list and its schema version."""

    @abstractmethod
    def load(self) -> str:
        """Return the serialized profile list (JSON text)."""
        pass

    @abstractmethod
    def save(self, raw: str) -> None:
        pass

    @abstractmethod
    def load_version(self) -> int:
        pass

    @abstractmethod
    def save_version(self, version: int) -> None:
        pass


class MemoryProfileBackend(ProfileBackend):
    """
    In-memory backend for testing and embedding.

    Tracks how many times it was saved.
    """

    def __init__(self, raw: str = "[]", version: int = CURRENT_SCHEMA_VERSION) -> None:
        self.raw = raw
        self.version = version
        self.save_count = 0

    def load(self) -> str:
        return self.raw

    def save(self, raw: str) -> None:
        self.raw = raw
        self.save_count += 1

    def load_version(self) -> int:
        return self.version

    def save_version(self, version: int) -> None:
        self.version = version


class ProfileRepository(ProfileStore):
    """
    Validated, cached view over a ProfileBackend.

    Responsibilities:
    - Parse and validate stored records, dropping unusable ones
    - Cache the parsed list against the raw serialized text
    - Enforce id uniqueness, the profile limit, and conflict-freedom on writes
    - Run schema migrations

    The cache is {last_value, last_fingerprint}; every save calls
    invalidate().
    """

    MAX_PROFILES = 10

    _UPDATABLE_FIELDS = frozenset({"name", "rules", "schedule", "target"})

    def __init__(
        self,
        backend: ProfileBackend,
        parameters: Optional[Mapping[str, ParameterDefinition]] = None,
    ) -> None:
        self._backend = backend
        self._parameters = parameters if parameters is not None else PARAMETERS
        self._last_value: Optional[List[Profile]] = None
        self._last_fingerprint: Optional[str] = None

    # =========================================================================
    # Cache
    # =========================================================================

    def invalidate(self) -> None:
        """Drop the cached profile list."""
        self._last_value = None
        self._last_fingerprint = None

    # =========================================================================
    # Reads
    # =========================================================================

    def list(self) -> List[Profile]:
        """
        Get all valid profiles in stored order.

        Invalid records are dropped with a warning. A payload that is not a
        list, or a list where every record is invalid, is replaced by the
        built-in profiles. An empty list is kept (the user deleted all).

        Returns:
            Validated profiles (a copy; callers may not mutate the cache)
        """
        raw = self._backend.load()
        if self._last_value is not None and raw == self._last_fingerprint:
            return list(self._last_value)

        try:
            records = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Failed to parse stored profiles: {e}")
            self.invalidate()
            return default_profiles()

        if not isinstance(records, list):
            logger.warning("Stored profiles are not a list, restoring defaults")
            return self._restore_defaults()

        if not records:
            self._remember(raw, [])
            return []

        profiles = self._parse_records(records)
        if not profiles:
            logger.warning("No valid stored profiles, restoring defaults")
            return self._restore_defaults()

        self._remember(raw, profiles)
        return list(profiles)

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        """Find a profile by ID."""
        for profile in self.list():
            if profile.id == profile_id:
                return profile
        return None

    def _parse_records(self, records: List[Any]) -> List[Profile]:
        profiles: List[Profile] = []
        seen_ids = set()

        for index, record in enumerate(records):
            try:
                profile = Profile.from_dict(record)
            except ValueError as e:
                logger.warning(f"Dropping unreadable profile record {index}: {e}")
                continue

            if isinstance(profile.name, str):
                profile = dataclasses.replace(profile, name=profile.name.strip())

            result = validate_profile(profile, self._parameters)
            if not result.valid:
                logger.warning(
                    f"Dropping invalid profile (id: {profile.id!r}, name: {profile.name!r}): "
                    f"{'; '.join(result.errors)}"
                )
                continue

            if profile.id in seen_ids:
                logger.warning(f"Dropping duplicate profile id: {profile.id}")
                continue

            seen_ids.add(profile.id)
            profiles.append(profile)

        return profiles

    def _remember(self, raw: str, profiles: List[Profile]) -> None:
        self._last_value = list(profiles)
        self._last_fingerprint = raw

    def _restore_defaults(self) -> List[Profile]:
        defaults = default_profiles()
        self.save_all(defaults)
        return defaults

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self, candidate: Profile) -> ValidationResult:
        """Structural validation of a candidate profile."""
        return validate_profile(candidate, self._parameters)

    def conflict(self, candidate: Profile, exclude_id: Optional[str] = None) -> Optional[Profile]:
        """Find a stored profile that would be ambiguous alongside `candidate`."""
        return find_rule_conflict(self.list(), candidate, exclude_id, self._parameters)

    def _check_write(
        self,
        candidate: Profile,
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        result = self.validate(candidate)
        if not result.valid:
            return result

        existing = self.conflict(candidate, exclude_id)
        if existing is not None:
            return ValidationResult.failed(
                f'Activation rules conflict with profile "{existing.name}" ({existing.id})'
            )
        return ValidationResult.ok()

    # =========================================================================
    # Writes
    # =========================================================================

    def save_all(self, profiles: List[Profile]) -> None:
        """Persist the full ordered profile list."""
        self._backend.save(json.dumps([p.to_dict() for p in profiles]))
        self.invalidate()

    def create(self, profile: Profile) -> ValidationResult:
        """
        Append a new profile.

        Args:
            profile: Profile to add

        Returns:
            ValidationResult; nothing is saved unless valid
        """
        profiles = self.list()

        if len(profiles) >= self.MAX_PROFILES:
            return ValidationResult.failed("Maximum profile limit reached")

        if any(p.id == profile.id for p in profiles):
            return ValidationResult.failed(f"A profile with id '{profile.id}' already exists")

        if isinstance(profile.name, str):
            profile = dataclasses.replace(profile, name=profile.name.strip())

        result = self._check_write(profile)
        if not result.valid:
            logger.debug(f"Rejected new profile {profile.id}: {result.errors}")
            return result

        profiles.append(profile)
        self.save_all(profiles)
        logger.info(f"Created profile {profile.id}")
        return result

    def update(self, profile_id: str, changes: Dict[str, Any]) -> ValidationResult:
        """
        Update fields of an existing profile. The ID cannot change.

        Args:
            profile_id: ID of the profile to update
            changes: Field name -> new value (name, rules, schedule, target)

        Returns:
            ValidationResult; nothing is saved unless valid
        """
        profiles = self.list()
        index = next((i for i, p in enumerate(profiles) if p.id == profile_id), None)
        if index is None:
            return ValidationResult.failed(f"Profile not found: {profile_id}")

        changes = {k: v for k, v in changes.items() if k != "id"}
        unknown = set(changes) - self._UPDATABLE_FIELDS
        if unknown:
            return ValidationResult.failed(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        if isinstance(changes.get("name"), str):
            changes["name"] = changes["name"].strip()

        try:
            updated = dataclasses.replace(profiles[index], **changes)
        except (TypeError, ValueError) as e:
            logger.debug(f"Rejected update to {profile_id}: {e}")
            return ValidationResult.failed(f"Invalid profile fields: {e}")

        result = self._check_write(updated, exclude_id=profile_id)
        if not result.valid:
            logger.debug(f"Rejected update to {profile_id}: {result.errors}")
            return result

        profiles[index] = updated
        self.save_all(profiles)
        logger.info(f"Updated profile {profile_id}")
        return result

    def delete(self, profile_id: str) -> bool:
        """
        Remove a profile.

        Returns:
            True if removed, False if not found
        """
        profiles = self.list()
        remaining = [p for p in profiles if p.id != profile_id]
        if len(remaining) == len(profiles):
            return False

        self.save_all(remaining)
        logger.info(f"Deleted profile {profile_id}")
        return True

    # =========================================================================
    # Migrations
    # =========================================================================

    def run_migrations(self) -> bool:
        """
        Upgrade stored records to the current schema version.

        Returns:
            True if any migration changed the stored records
        """
        version = self._backend.load_version()
        if version >= CURRENT_SCHEMA_VERSION:
            return False

        try:
            records = json.loads(self._backend.load())
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Cannot migrate unreadable profiles: {e}")
            records = []
        if not isinstance(records, list):
            records = []

        defaults = [p.to_dict() for p in default_profiles()]
        migrated, changed = migrate_records(records, version, defaults)

        if changed:
            self._backend.save(json.dumps(migrated))
            self.invalidate()

        self._backend.save_version(CURRENT_SCHEMA_VERSION)
        logger.info(f"Profile schema migrated from v{version} to v{CURRENT_SCHEMA_VERSION}")
        return changed
