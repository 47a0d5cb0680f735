"""
Auto-manager for auto-profile.

Switches profiles automatically as parameters change and schedule windows
open or close, and stands aside after a manual override.

Features:
- Debounced re-evaluation after parameter changes
- Schedule-boundary timer (capped, so drift self-corrects)
- Pause on manual override, resume on request or on state change
- Serialized applies; the active profile is never re-applied
- Host adapters for parameter sources and profile appliers
"""

from .module import AutoManager, TimerKind
from .config import AutoManagerConfig, config_schema, default_config, migrate_config
from .adapter import Applier, ParameterSource, MockApplier, MockParameterSource

__all__ = [
    "AutoManager",
    "TimerKind",
    # Config
    "AutoManagerConfig",
    "config_schema",
    "default_config",
    "migrate_config",
    # Adapters
    "Applier",
    "ParameterSource",
    "MockApplier",
    "MockParameterSource",
]
