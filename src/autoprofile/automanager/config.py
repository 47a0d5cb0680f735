"""
Configuration for the auto-manager.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

logger = logging.getLogger(__name__)

CURRENT_CONFIG_VERSION = 1

# Hyphenated setting names used by older hosts
_LEGACY_KEYS = {
    "auto-switch-enabled": "auto_switch_enabled",
    "resume-on-state-change": "resume_on_state_change",
}


@dataclass(frozen=True)
class AutoManagerConfig:
    """
    Auto-manager settings.

    Attributes:
        version: Config schema version
        auto_switch_enabled: Master switch for automatic profile switching
        resume_on_state_change: A parameter change ends a manual-override pause
        debounce_seconds: Quiet period before re-evaluating after a change
        initial_delay_seconds: Delay before the first evaluation on start
        max_boundary_delay_seconds: Cap on the schedule-boundary timer
    """

    version: int = CURRENT_CONFIG_VERSION
    auto_switch_enabled: bool = True
    resume_on_state_change: bool = True
    debounce_seconds: float = 0.3
    initial_delay_seconds: float = 0.5
    max_boundary_delay_seconds: float = 3600.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "version": self.version,
            "auto_switch_enabled": self.auto_switch_enabled,
            "resume_on_state_change": self.resume_on_state_change,
            "debounce_seconds": self.debounce_seconds,
            "initial_delay_seconds": self.initial_delay_seconds,
            "max_boundary_delay_seconds": self.max_boundary_delay_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutoManagerConfig":
        """Deserialize from dict (migrating older versions first)."""
        data = migrate_config(data)
        defaults = cls()
        return cls(
            version=data.get("version", CURRENT_CONFIG_VERSION),
            auto_switch_enabled=data.get("auto_switch_enabled", defaults.auto_switch_enabled),
            resume_on_state_change=data.get(
                "resume_on_state_change", defaults.resume_on_state_change
            ),
            debounce_seconds=data.get("debounce_seconds", defaults.debounce_seconds),
            initial_delay_seconds=data.get("initial_delay_seconds", defaults.initial_delay_seconds),
            max_boundary_delay_seconds=data.get(
                "max_boundary_delay_seconds", defaults.max_boundary_delay_seconds
            ),
        )


def migrate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate configuration to the current version.

    Version 0 (unversioned) configs used hyphenated setting names.

    Args:
        config: Configuration dict (potentially older version)

    Returns:
        Migrated configuration dict
    """
    if config.get("version", 0) >= CURRENT_CONFIG_VERSION:
        return config

    migrated = dict(config)
    for legacy, key in _LEGACY_KEYS.items():
        if legacy in migrated:
            migrated.setdefault(key, migrated.pop(legacy))
    migrated["version"] = CURRENT_CONFIG_VERSION
    logger.info(f"Migrated auto-manager config to v{CURRENT_CONFIG_VERSION}")
    return migrated


def default_config() -> Dict[str, Any]:
    """Get default auto-manager configuration."""
    return AutoManagerConfig().to_dict()


def config_schema() -> Dict[str, Any]:
    """
    Get configuration schema for the auto-manager.

    Returns a JSON-schema-like structure for UI rendering.
    """
    return {
        "type": "object",
        "properties": {
            "version": {
                "type": "integer",
                "title": "Config Version",
                "readOnly": True,
            },
            "auto_switch_enabled": {
                "type": "boolean",
                "title": "Automatic Switching",
                "description": "Switch profiles automatically when rules or schedules match",
                "default": True,
            },
            "resume_on_state_change": {
                "type": "boolean",
                "title": "Resume On State Change",
                "description": "End a manual override when a monitored parameter changes",
                "default": True,
            },
            "debounce_seconds": {
                "type": "number",
                "title": "Debounce (seconds)",
                "minimum": 0,
                "default": 0.3,
            },
            "initial_delay_seconds": {
                "type": "number",
                "title": "Initial Evaluation Delay (seconds)",
                "minimum": 0,
                "default": 0.5,
            },
            "max_boundary_delay_seconds": {
                "type": "number",
                "title": "Max Schedule Timer Delay (seconds)",
                "description": "Caps the schedule wake-up timer so DST drift self-corrects",
                "minimum": 1,
                "default": 3600,
            },
        },
        "required": ["version"],
    }
