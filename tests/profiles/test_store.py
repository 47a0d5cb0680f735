"""Tests for the profile repository."""

import json
import logging

import pytest

from autoprofile.profiles import CURRENT_SCHEMA_VERSION, MemoryProfileBackend, ProfileRepository
from autoprofile.profiles import store as store_module
from autoprofile.rules import Condition, Operator, Profile, Schedule

BATTERY = Condition("power_source", Operator.IS, "battery")
AC = Condition("power_source", Operator.IS, "ac")
DISPLAY = Condition("external_display", Operator.IS, "connected")


def record(profile_id, name=None, rules=(), schedule=None, target=None):
    """Helper to build a stored record."""
    return {
        "id": profile_id,
        "name": name or profile_id.title(),
        "target": target or {},
        "rules": [dict(r) for r in rules],
        "schedule": schedule,
    }


@pytest.fixture
def backend():
    """Create an empty in-memory backend."""
    return MemoryProfileBackend()


@pytest.fixture
def repository(backend):
    """Create a repository over the in-memory backend."""
    return ProfileRepository(backend)


class TestList:
    """Tests for loading stored profiles."""

    def test_empty_store(self, repository, backend):
        """Test an empty list stays empty (the user deleted everything)."""
        assert repository.list() == []
        assert backend.save_count == 0

    def test_loads_valid_records(self, backend, repository):
        backend.raw = json.dumps(
            [
                record("desk", rules=[{"param": "external_display", "op": "is", "value": "connected"}]),
                record("quiet"),
            ]
        )
        profiles = repository.list()

        assert [p.id for p in profiles] == ["desk", "quiet"]
        assert profiles[0].rules == (DISPLAY,)

    def test_invalid_records_dropped(self, backend, repository, caplog):
        """Test unusable records are dropped with a warning."""
        backend.raw = json.dumps(
            [
                record("desk"),
                record("Bad Id"),
                record("weird", rules=[{"param": "power_source", "op": "equals", "value": "ac"}]),
                "not an object",
            ]
        )
        with caplog.at_level(logging.WARNING):
            profiles = repository.list()

        assert [p.id for p in profiles] == ["desk"]
        assert "Dropping" in caplog.text
        assert backend.save_count == 0

    def test_duplicate_ids_dropped(self, backend, repository):
        backend.raw = json.dumps([record("desk", "First"), record("desk", "Second")])
        profiles = repository.list()

        assert len(profiles) == 1
        assert profiles[0].name == "First"

    def test_names_are_trimmed(self, backend, repository):
        backend.raw = json.dumps([record("desk", "  Desk  ")])
        assert repository.list()[0].name == "Desk"

    def test_all_invalid_restores_defaults(self, backend, repository):
        """Test a store with no usable record is reset to the built-ins."""
        backend.raw = json.dumps([record("Bad Id")])
        profiles = repository.list()

        assert [p.id for p in profiles] == ["docked", "travel"]
        assert backend.save_count == 1

    def test_non_list_restores_defaults(self, backend, repository):
        backend.raw = json.dumps({"docked": {}})
        assert [p.id for p in repository.list()] == ["docked", "travel"]
        assert backend.save_count == 1

    def test_unparseable_json_returns_defaults_without_saving(self, backend, repository, caplog):
        """Test corrupt storage is not overwritten."""
        backend.raw = "{not json"
        with caplog.at_level(logging.ERROR):
            profiles = repository.list()

        assert [p.id for p in profiles] == ["docked", "travel"]
        assert backend.save_count == 0
        assert backend.raw == "{not json"

    def test_cached_until_raw_changes(self, backend, repository, monkeypatch):
        """Test parsing happens once per distinct serialized value."""
        calls = []
        original = store_module.validate_profile

        def counting_validate(*args, **kwargs):
            calls.append(args[0].id)
            return original(*args, **kwargs)

        monkeypatch.setattr(store_module, "validate_profile", counting_validate)
        backend.raw = json.dumps([record("desk")])

        repository.list()
        repository.list()
        assert calls == ["desk"]

        backend.raw = json.dumps([record("desk"), record("quiet")])
        repository.list()
        assert calls == ["desk", "desk", "quiet"]

    def test_invalidate_forces_reparse(self, backend, repository, monkeypatch):
        calls = []
        original = store_module.validate_profile

        def counting_validate(*args, **kwargs):
            calls.append(args[0].id)
            return original(*args, **kwargs)

        monkeypatch.setattr(store_module, "validate_profile", counting_validate)
        backend.raw = json.dumps([record("desk")])

        repository.list()
        repository.invalidate()
        repository.list()
        assert calls == ["desk", "desk"]

    def test_returned_list_is_a_copy(self, backend, repository):
        backend.raw = json.dumps([record("desk")])
        repository.list().clear()
        assert len(repository.list()) == 1

    def test_get_by_id(self, backend, repository):
        backend.raw = json.dumps([record("desk")])
        assert repository.get_by_id("desk").name == "Desk"
        assert repository.get_by_id("missing") is None


class TestCreate:
    """Tests for creating profiles."""

    def test_create(self, repository, backend):
        result = repository.create(Profile(id="travel", name=" Travel ", rules=[BATTERY]))

        assert result.valid
        assert backend.save_count == 1
        stored = json.loads(backend.raw)
        assert stored == [
            {
                "id": "travel",
                "name": "Travel",
                "target": {},
                "rules": [{"param": "power_source", "op": "is", "value": "battery"}],
                "schedule": None,
            }
        ]

    def test_invalid_profile_not_saved(self, repository, backend):
        result = repository.create(Profile(id="Travel Mode", name="Travel"))
        assert not result.valid
        assert backend.save_count == 0

    def test_duplicate_id(self, repository):
        repository.create(Profile(id="travel", name="Travel"))
        result = repository.create(Profile(id="travel", name="Other"))
        assert result.error == "A profile with id 'travel' already exists"

    def test_conflict_rejected(self, repository, backend):
        """Test a profile that would be ambiguous is not saved."""
        repository.create(Profile(id="travel", name="Travel", rules=[BATTERY]))
        result = repository.create(Profile(id="unplugged", name="Unplugged", rules=[BATTERY]))

        assert not result.valid
        assert result.error == 'Activation rules conflict with profile "Travel" (travel)'
        assert backend.save_count == 1

    def test_schedule_resolves_conflict(self, repository):
        repository.create(Profile(id="travel", name="Travel", rules=[BATTERY]))
        weekends = Schedule(enabled=True, days=[6, 7], start_time="09:00", end_time="17:00")
        result = repository.create(
            Profile(id="weekend", name="Weekend", rules=[BATTERY], schedule=weekends)
        )
        assert result.valid

    def test_profile_limit(self, repository):
        for index in range(ProfileRepository.MAX_PROFILES):
            assert repository.create(Profile(id=f"manual-{index}", name=f"Manual {index}")).valid

        result = repository.create(Profile(id="one-more", name="One More"))
        assert result.error == "Maximum profile limit reached"


class TestUpdate:
    """Tests for updating profiles."""

    def test_update_fields(self, repository):
        repository.create(Profile(id="travel", name="Travel", rules=[BATTERY]))
        result = repository.update("travel", {"name": "Road", "target": {"power_mode": "balanced"}})

        assert result.valid
        updated = repository.get_by_id("travel")
        assert updated.name == "Road"
        assert updated.target == {"power_mode": "balanced"}
        assert updated.rules == (BATTERY,)

    def test_id_cannot_change(self, repository):
        repository.create(Profile(id="travel", name="Travel"))
        repository.update("travel", {"id": "renamed", "name": "Road"})

        assert repository.get_by_id("renamed") is None
        assert repository.get_by_id("travel").name == "Road"

    def test_unknown_field(self, repository):
        repository.create(Profile(id="travel", name="Travel"))
        result = repository.update("travel", {"colour": "blue"})
        assert result.error == "Unknown profile fields: colour"

    def test_missing_profile(self, repository):
        assert repository.update("missing", {"name": "X"}).error == "Profile not found: missing"

    def test_conflict_ignores_self(self, repository):
        """Test a profile does not conflict with its own stored version."""
        repository.create(Profile(id="travel", name="Travel", rules=[BATTERY]))
        assert repository.update("travel", {"rules": [BATTERY]}).valid

    def test_conflict_with_other(self, repository, backend):
        repository.create(Profile(id="travel", name="Travel", rules=[BATTERY]))
        repository.create(Profile(id="plugged", name="Plugged", rules=[AC]))
        saves = backend.save_count

        result = repository.update("plugged", {"rules": [BATTERY]})
        assert not result.valid
        assert backend.save_count == saves
        assert repository.get_by_id("plugged").rules == (AC,)

    def test_null_rules_rejected(self, repository, backend):
        """Test a malformed rules value is reported instead of raising."""
        repository.create(Profile(id="desk", name="Desk", rules=[DISPLAY]))
        saves = backend.save_count

        result = repository.update("desk", {"rules": None})

        assert not result.valid
        assert result.error.startswith("Invalid profile fields")
        assert backend.save_count == saves

    def test_null_target_rejected(self, repository, backend):
        repository.create(Profile(id="desk", name="Desk", rules=[DISPLAY]))
        saves = backend.save_count

        result = repository.update("desk", {"target": None})

        assert result.errors == ["Profile target must be an object"]
        assert backend.save_count == saves
        assert repository.get_by_id("desk").target == {}


class TestDelete:
    """Tests for deleting profiles."""

    def test_delete(self, repository):
        repository.create(Profile(id="travel", name="Travel"))
        assert repository.delete("travel")
        assert repository.list() == []

    def test_delete_missing(self, repository, backend):
        assert not repository.delete("missing")
        assert backend.save_count == 0


class TestRunMigrations:
    """Tests for running schema migrations through the repository."""

    def test_up_to_date(self, repository):
        assert repository.run_migrations() is False

    def test_legacy_records_upgraded(self):
        legacy = [
            {
                "id": "docked",
                "name": "Docked",
                "powerMode": "performance",
                "batteryMode": "max-lifespan",
                "forceDischarge": "on",
                "icon": "docked-symbolic",
                "builtin": True,
                "autoManaged": True,
                "rules": [{"param": "external_display", "op": "is", "value": "connected"}],
            }
        ]
        backend = MemoryProfileBackend(raw=json.dumps(legacy), version=1)
        repository = ProfileRepository(backend)

        assert repository.run_migrations() is True
        assert backend.version == CURRENT_SCHEMA_VERSION

        stored = json.loads(backend.raw)
        assert stored == [
            {
                "id": "docked",
                "name": "Docked",
                "rules": [{"param": "external_display", "op": "is", "value": "connected"}],
                "schedule": None,
                "target": {"power_mode": "performance", "battery_mode": "max-lifespan"},
            }
        ]
        assert repository.get_by_id("docked").target["power_mode"] == "performance"

    def test_fresh_install_seeded(self):
        """Test an empty store from before seeding gets the built-ins."""
        backend = MemoryProfileBackend(raw="[]", version=3)
        repository = ProfileRepository(backend)

        assert repository.run_migrations() is True
        assert [p.id for p in repository.list()] == ["docked", "travel"]
