"""
autoprofile: rule- and schedule-driven power profile switching.

This library decides which power profile a machine should run:
- Conditions over observed parameters (display, power source, lid, battery)
- Weekly schedules, including overnight windows
- Most-specific-wins matching with conflict detection
- An auto-manager that debounces changes and honors manual overrides
"""

from autoprofile.core.bus import Event, EventBus, EventFilter
from autoprofile.rules import Condition, Schedule, Profile, evaluate, conflict
from autoprofile.profiles import ProfileRepository, MemoryProfileBackend
from autoprofile.automanager import AutoManager, AutoManagerConfig

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "Condition",
    "Schedule",
    "Profile",
    "evaluate",
    "conflict",
    "ProfileRepository",
    "MemoryProfileBackend",
    "AutoManager",
    "AutoManagerConfig",
]
