"""
Host adapter interfaces for the auto-manager.

The adapters are the seam between the auto-manager and the host platform:
something observes hardware and reports parameter values, something applies
a chosen profile's settings. The integration layer provides concrete
implementations.

Design Principle:
    The adapters are intentionally minimal. Reading sysfs, listening on
    D-Bus, or talking to a power daemon all belong in the integration layer.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, TYPE_CHECKING

from autoprofile.rules.models import ParameterChanged, ParameterValue, Snapshot, make_snapshot

if TYPE_CHECKING:
    from autoprofile.core.bus import EventBus


class ParameterSource(ABC):
    """
    Abstract source of observed parameter values.

    Changes are pushed separately (as ParameterChanged messages or
    parameter.changed bus events); this interface only reads.
    """

    @abstractmethod
    def snapshot(self) -> Snapshot:
        """
        Get current values for all known parameters.

        Returns:
            Immutable mapping; unknown parameters are absent
        """
        pass


class Applier(ABC):
    """
    Abstract interface for applying a profile's target settings.
    """

    @abstractmethod
    async def apply(self, profile_id: str) -> bool:
        """
        Apply a profile.

        Args:
            profile_id: Profile to apply

        Returns:
            True if the profile was applied, False otherwise
        """
        pass

    @abstractmethod
    def current_profile_id(self) -> Optional[str]:
        """ID of the currently applied profile, or None."""
        pass


class MockParameterSource(ParameterSource):
    """
    Mock parameter source for testing.

    Setting a value publishes a parameter.changed event when a bus is set.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, ParameterValue]] = None,
        bus: Optional["EventBus"] = None,
    ) -> None:
        self._values: Dict[str, ParameterValue] = dict(values or {})
        self._bus = bus

    def set_bus(self, bus: "EventBus") -> None:
        self._bus = bus

    def set_value(self, name: str, value: Optional[ParameterValue]) -> ParameterChanged:
        """Set (or clear, with None) a parameter value for testing."""
        if value is None:
            self._values.pop(name, None)
        else:
            self._values[name] = value

        change = ParameterChanged(name=name, value=value)
        if self._bus:
            self._bus.publish(change.to_event())
        return change

    # ParameterSource implementation

    def snapshot(self) -> Snapshot:
        return make_snapshot(self._values)


class MockApplier(Applier):
    """
    Mock applier for testing.

    Records apply calls. Can be told to fail, to raise, or to block until
    released (to exercise in-flight applies).
    """

    def __init__(self, current: Optional[str] = None) -> None:
        self._current = current
        self._calls: List[str] = []
        self.succeed = True
        self.error: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None

    def get_calls(self) -> List[str]:
        """Get recorded apply calls."""
        return self._calls.copy()

    def clear_calls(self) -> None:
        self._calls.clear()

    def set_current(self, profile_id: Optional[str]) -> None:
        """Simulate a profile applied outside the auto-manager."""
        self._current = profile_id

    # Applier implementation

    async def apply(self, profile_id: str) -> bool:
        self._calls.append(profile_id)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.succeed:
            self._current = profile_id
        return self.succeed

    def current_profile_id(self) -> Optional[str]:
        return self._current
