"""
AutoManager implementation.

Turns parameter changes and schedule boundaries into profile switches.
"""

import asyncio
import dataclasses
import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from autoprofile.core.bus import Event, EventBus, EventFilter
from autoprofile.profiles.store import ProfileStore
from autoprofile.rules.matcher import find_matching_profile
from autoprofile.rules.models import ParameterChanged, Profile
from autoprofile.rules.schedule import seconds_until_next_boundary

from .adapter import Applier, ParameterSource
from .config import AutoManagerConfig

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class TimerKind(Enum):
    """Timer classes; each has at most one pending deadline."""

    INITIAL = "initial"
    DEBOUNCE = "debounce"
    BOUNDARY = "boundary"


class AutoManager:
    """
    Orchestrates automatic profile switching.

    States are running and paused (manual override). Parameter changes
    arm a debounced re-evaluation; a schedule-boundary timer re-evaluates
    when a time window opens or closes.

    Note: Timers are plain deadlines. The host either:
    1. Calls check_timeouts(now), using get_next_timeout() to know when
    2. Runs the run() loop, which does both

    Example:
        ```python
        manager = AutoManager(repository, detector, applier, bus=bus)
        manager.attach(bus)
        manager.start()

        next_check = manager.get_next_timeout()
        if next_check:
            schedule_at(next_check, manager.check_timeouts)
        ```
    """

    def __init__(
        self,
        store: ProfileStore,
        parameters: ParameterSource,
        applier: Applier,
        bus: Optional[EventBus] = None,
        config: Optional[AutoManagerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the auto-manager.

        Args:
            store: Source of validated profiles
            parameters: Source of parameter snapshots
            applier: Applies a chosen profile
            bus: Event bus for notifications (can be set later via attach())
            config: Settings (defaults if None)
            clock: Returns local wall-clock time (datetime.now if None)
        """
        self._store = store
        self._parameters = parameters
        self._applier = applier
        self._bus = bus
        self._config = config or AutoManagerConfig()
        self._clock = clock or datetime.now

        self._attached = False
        self._running = False
        self._paused = False
        self._timers: Dict[TimerKind, datetime] = {}

        self._evaluating = False
        self._pending_evaluation = False
        self._applying_id: Optional[str] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> AutoManagerConfig:
        return self._config

    @property
    def paused(self) -> bool:
        """Whether a manual override has paused automatic switching."""
        return self._paused

    @property
    def auto_switch_enabled(self) -> bool:
        return self._config.auto_switch_enabled

    @property
    def evaluating(self) -> bool:
        return self._evaluating

    # =========================================================================
    # Wiring
    # =========================================================================

    def attach(self, bus: EventBus) -> None:
        """
        Subscribe to parameter.changed events on the bus.

        Raises:
            RuntimeError: If already attached
        """
        if self._attached:
            raise RuntimeError("AutoManager is already attached")

        logger.info("Attaching AutoManager")
        self._bus = bus
        bus.subscribe(self._on_parameter_event, EventFilter(event_type="parameter.changed"))
        self._attached = True

    def start(self, now: Optional[datetime] = None) -> None:
        """
        Arm the initial evaluation and the schedule-boundary timer.

        A pause restored from a previous run is cleared when
        resume_on_state_change is set.
        """
        now = now or self._clock()

        if self._paused and self._config.resume_on_state_change:
            self._set_paused(False)

        if self._config.auto_switch_enabled and not self._paused:
            self._arm(TimerKind.INITIAL, now, self._config.initial_delay_seconds)

        self.reschedule_boundary(now)

    def _on_parameter_event(self, event: Event) -> None:
        """Handle parameter.changed bus events."""
        try:
            change = ParameterChanged.from_event(event)
        except ValueError as e:
            logger.warning(f"Ignoring malformed parameter event: {e}")
            return
        self.notify(change)

    def notify(self, change: ParameterChanged, now: Optional[datetime] = None) -> None:
        """
        Process a parameter change.

        Ignored while auto-switching is disabled. Ends a pause when
        resume_on_state_change is set, then arms the debounce timer.
        """
        logger.debug(f"Parameter changed: {change.name} = {change.value}")

        if not self._config.auto_switch_enabled:
            return

        if self._paused and self._config.resume_on_state_change:
            logger.debug("State changed, resuming auto-management")
            self._set_paused(False)

        if not self._paused:
            self._arm(TimerKind.DEBOUNCE, now or self._clock(), self._config.debounce_seconds)

    # =========================================================================
    # Pause / Resume
    # =========================================================================

    def manual_override(self) -> None:
        """Record a manual profile switch by the user (pauses if enabled)."""
        if self._config.auto_switch_enabled:
            self.pause()

    def pause(self) -> None:
        """Pause automatic switching."""
        self._set_paused(True)

    async def resume(self, now: Optional[datetime] = None) -> None:
        """Resume automatic switching and evaluate immediately."""
        self._set_paused(False)
        await self.evaluate(now)

    async def set_auto_switch_enabled(self, enabled: bool, now: Optional[datetime] = None) -> None:
        """
        Toggle automatic switching.

        Re-enabling clears any pause and evaluates immediately.
        """
        if enabled == self._config.auto_switch_enabled:
            return

        self._config = dataclasses.replace(self._config, auto_switch_enabled=enabled)
        logger.info(f"Auto-switch {'enabled' if enabled else 'disabled'}")

        if not enabled:
            self._cancel(TimerKind.INITIAL)
            self._cancel(TimerKind.DEBOUNCE)
            return

        now = now or self._clock()
        self._set_paused(False)
        await self.evaluate(now)
        self.reschedule_boundary(now)

    def _set_paused(self, paused: bool) -> None:
        if self._paused == paused:
            return

        self._paused = paused
        if paused:
            self._cancel(TimerKind.INITIAL)
            self._cancel(TimerKind.DEBOUNCE)

        logger.info(f"Auto-manage {'paused' if paused else 'resumed'}")
        self._publish(
            Event(
                type="auto_manage.paused_changed",
                source="automanager",
                payload={"paused": paused},
            )
        )

    # =========================================================================
    # Timers
    # =========================================================================

    def _arm(self, kind: TimerKind, now: datetime, delay: float) -> None:
        """Set (or replace) the deadline for a timer class."""
        self._timers[kind] = now + timedelta(seconds=delay)
        logger.debug(f"Armed {kind.value} timer for {delay:.1f}s")

    def _cancel(self, kind: TimerKind) -> None:
        self._timers.pop(kind, None)

    def pending_timer(self, kind: TimerKind) -> Optional[datetime]:
        """Deadline of a pending timer, or None."""
        return self._timers.get(kind)

    def get_next_timeout(self) -> Optional[datetime]:
        """
        Get when check_timeouts() should next be called.

        Returns:
            Earliest pending deadline, or None if no timer is pending
        """
        if not self._timers:
            return None
        return min(self._timers.values())

    async def check_timeouts(self, now: Optional[datetime] = None) -> None:
        """
        Fire every timer whose deadline has passed.

        Exceptions raised while handling a timer are logged; the remaining
        timers still fire.
        """
        now = now or self._clock()
        due = [kind for kind, deadline in self._timers.items() if deadline <= now]

        for kind in due:
            self._timers.pop(kind, None)
            logger.debug(f"{kind.value} timer fired")
            try:
                await self.evaluate(now)
            except Exception as e:
                logger.error(f"Error handling {kind.value} timer: {e}", exc_info=True)

            if kind is TimerKind.BOUNDARY:
                try:
                    self.reschedule_boundary(now)
                except Exception as e:
                    # Re-scan at the cap until the store recovers
                    self._arm(TimerKind.BOUNDARY, now, self._config.max_boundary_delay_seconds)
                    logger.error(f"Error rescheduling boundary timer: {e}", exc_info=True)

    def reschedule_boundary(self, now: Optional[datetime] = None) -> float:
        """
        Arm the boundary timer for the nearest schedule boundary.

        The delay is capped so wall-clock drift is corrected within the cap.
        With no enabled schedule the timer still fires at the cap, so a
        schedule added to the store later is picked up.

        Returns:
            Delay in seconds until the timer fires
        """
        now = now or self._clock()
        delay = min(
            (
                seconds_until_next_boundary(profile.schedule, now)
                for profile in self._store.list()
                if profile.has_enabled_schedule
            ),
            default=math.inf,
        )

        if math.isinf(delay):
            logger.debug("No enabled schedules, re-scanning at the boundary cap")

        delay = min(delay, self._config.max_boundary_delay_seconds)
        self._arm(TimerKind.BOUNDARY, now, delay)
        return delay

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate(self, now: Optional[datetime] = None) -> Optional[Profile]:
        """
        Evaluate rules against a fresh snapshot and apply the winner.

        Does nothing while disabled or paused. A request that arrives while
        an apply is in flight is dropped when it matches the profile being
        applied; otherwise it is deferred, and one re-evaluation is
        debounced after the in-flight one completes.

        Returns:
            The matching profile (whether or not it was applied), or None
        """
        if not self._config.auto_switch_enabled or self._paused:
            return None

        now = now or self._clock()

        if self._evaluating:
            if self._applying_id is not None:
                match = self._find_match(now)
                if match is not None and match.id == self._applying_id:
                    logger.debug(f"Profile {match.id} already being applied, skipping")
                    return match
            self._pending_evaluation = True
            return None

        self._evaluating = True
        try:
            match = self._find_match(now)
            if match is None:
                return None

            if match.id == self._applier.current_profile_id():
                logger.debug(f"Profile {match.id} already active, skipping apply")
                return match

            await self._apply(match)
            return match
        finally:
            self._evaluating = False
            if self._pending_evaluation:
                self._pending_evaluation = False
                self._arm(TimerKind.DEBOUNCE, self._clock(), self._config.debounce_seconds)

    def _find_match(self, now: datetime) -> Optional[Profile]:
        snapshot = self._parameters.snapshot()
        current_id = self._applier.current_profile_id()
        return find_matching_profile(self._store.list(), snapshot, now, current_id)

    async def _apply(self, profile: Profile) -> bool:
        """Apply a profile, publishing the outcome."""
        self._applying_id = profile.id
        error: Optional[str] = None
        try:
            applied = await self._applier.apply(profile.id)
        except Exception as e:
            logger.error(f"Failed to apply profile {profile.id}: {e}", exc_info=True)
            applied = False
            error = str(e)
        finally:
            self._applying_id = None

        if applied:
            logger.info(f"Switched to profile {profile.name} ({profile.id})")
            self._publish(
                Event(
                    type="profile.applied",
                    source="automanager",
                    profile_id=profile.id,
                    payload={"name": profile.name, "specificity": profile.specificity},
                )
            )
        else:
            if error is None:
                logger.warning(f"Applier declined profile {profile.id}")
            self._publish(
                Event(
                    type="profile.apply_failed",
                    source="automanager",
                    profile_id=profile.id,
                    payload={"error": error},
                )
            )
        return applied

    def _publish(self, event: Event) -> None:
        if self._bus:
            self._bus.publish(event)

    # =========================================================================
    # Run loop
    # =========================================================================

    async def run(
        self,
        changes: "asyncio.Queue[ParameterChanged]",
        stop: asyncio.Event,
    ) -> None:
        """
        Drain parameter changes and fire timers until `stop` is set.

        Args:
            changes: Queue of ParameterChanged messages
            stop: Set to end the loop

        Raises:
            RuntimeError: If the loop is already running
        """
        if self._running:
            raise RuntimeError("AutoManager loop is already running")

        self._running = True
        getter = asyncio.ensure_future(changes.get())
        stopper = asyncio.ensure_future(stop.wait())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {getter, stopper},
                    timeout=self._seconds_until_next_timeout(),
                    return_when=asyncio.FIRST_COMPLETED,
                )
                # A change dequeued in the same round as stop is still delivered
                if getter in done:
                    self.notify(getter.result())
                    getter = asyncio.ensure_future(changes.get())
                if stopper in done:
                    break
                await self.check_timeouts(self._clock())
        finally:
            getter.cancel()
            stopper.cancel()
            self._running = False
            logger.debug("AutoManager loop stopped")

    def _seconds_until_next_timeout(self) -> Optional[float]:
        next_timeout = self.get_next_timeout()
        if next_timeout is None:
            return None
        return max(0.0, (next_timeout - self._clock()).total_seconds())

    # =========================================================================
    # State persistence
    # =========================================================================

    def dump_state(self) -> Dict[str, Any]:
        """Export pause state for persistence."""
        return {"version": STATE_VERSION, "auto_manage_paused": self._paused}

    def restore_state(self, state: Dict[str, Any]) -> None:
        """Restore pause state from persistence (call before start())."""
        self._paused = bool(state.get("auto_manage_paused", False))
        logger.info(f"Restored auto-manage state (paused: {self._paused})")
