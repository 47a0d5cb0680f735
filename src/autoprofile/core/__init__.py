"""
Core components of the auto-profile kernel.

This package contains:
- bus: Event Bus implementation
"""

from autoprofile.core.bus import Event, EventBus, EventFilter

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
]
