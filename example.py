#!/usr/bin/env python3
"""
Quick example demonstrating auto-profile basic usage.

Set PYTHONPATH: PYTHONPATH=src python3 example.py
"""

import asyncio
from datetime import datetime

from autoprofile.automanager import AutoManager, MockApplier, MockParameterSource
from autoprofile.core.bus import EventBus, EventFilter
from autoprofile.profiles import MemoryProfileBackend, ProfileRepository
from autoprofile.rules import Condition, Operator, Profile, Schedule

print("=" * 60)
print("auto-profile Example")
print("=" * 60)

# 1. Kernel components
print("\n1. Creating components...")
bus = EventBus()
repository = ProfileRepository(MemoryProfileBackend(version=1))
repository.run_migrations()
print(f"   ✓ Seeded profiles: {[p.id for p in repository.list()]}")

# 2. Add a scheduled profile
print("\n2. Adding a work-hours profile...")
result = repository.create(
    Profile(
        id="office",
        name="Office",
        rules=[Condition("external_display", Operator.IS, "connected")],
        schedule=Schedule(enabled=True, days=[1, 2, 3, 4, 5], start_time="09:00", end_time="17:00"),
        target={"power_mode": "performance"},
    )
)
print(f"   ✓ Valid: {result.valid} {result.errors}")

# 3. Wire the auto-manager
print("\n3. Wiring the auto-manager...")
source = MockParameterSource({"external_display": "connected", "power_source": "ac"})
applier = MockApplier()
bus.subscribe(
    lambda e: print(f"   → {e.type}: {e.profile_id}"),
    EventFilter(event_type="profile.applied"),
)

# Monday 10:00
clock = lambda: datetime(2025, 1, 13, 10, 0)
manager = AutoManager(repository, source, applier, bus=bus, clock=clock)
manager.attach(bus)
source.set_bus(bus)

# 4. Evaluate
print("\n4. Evaluating (Monday 10:00, display connected)...")
asyncio.run(manager.evaluate())
print(f"   ✓ Active profile: {applier.current_profile_id()}")

# 5. Unplug
print("\n5. Unplugging the display and charger...")
source.set_value("external_display", "not_connected")
source.set_value("power_source", "battery")
asyncio.run(manager.evaluate())
print(f"   ✓ Active profile: {applier.current_profile_id()}")

print("\n" + "=" * 60)
print("Example complete!")
print("=" * 60)
