"""
Profile storage for auto-profile.

Provides the validated, cached profile repository, the schema migration
steps for older stored records, and the built-in presets.
"""

from .store import ProfileStore, ProfileBackend, MemoryProfileBackend, ProfileRepository
from .migrations import CURRENT_SCHEMA_VERSION, migrate_records
from .presets import docked_profile, travel_profile, default_profiles, is_builtin_profile

__all__ = [
    # Store
    "ProfileStore",
    "ProfileBackend",
    "MemoryProfileBackend",
    "ProfileRepository",
    # Migrations
    "CURRENT_SCHEMA_VERSION",
    "migrate_records",
    # Presets
    "docked_profile",
    "travel_profile",
    "default_profiles",
    "is_builtin_profile",
]
