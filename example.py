#!/usr/bin/env python3
"""
Quick example demonstrating epidemic-spaces basic usage.

Run with: PYTHONPATH=src python3 example.py
"""

from datetime import datetime, UTC, timedelta

import numpy as np

from epidemic_spaces import EventBus, EventFilter, Scheduler, TripPhase
from epidemic_spaces.core import mobility
from epidemic_spaces.modules.pandemic import PandemicModule

START = datetime(2025, 1, 15, 6, 0, 0, tzinfo=UTC)

print("=" * 60)
print("epidemic-spaces Example")
print("=" * 60)

# 1. Kernel components
print("\n1. Creating kernel components...")
bus = EventBus()
scheduler = Scheduler(START)
print("   ✓ EventBus and Scheduler created")

# 2. Pandemic module
print("\n2. Attaching pandemic module...")
pandemic = PandemicModule(
    np.random.default_rng(2025),
    {"initial_infection_rate": 0.0, "transmission_probability": 0.5},
)
pandemic.attach(bus, scheduler)
people = [f"person_{i}" for i in range(8)]
pandemic.initialize(people)
pandemic.introduce_infection("person_0")
print(f"   ✓ {len(people)} people, index case: person_0")


def on_change(event):
    print(f"   → {event.timestamp:%H:%M} {event.person_id}: {event.type} ({event.payload['reason']})")


bus.subscribe(on_change, EventFilter(event_type="pandemic.infected"))
bus.subscribe(on_change, EventFilter(event_type="pandemic.hospitalized"))

# 3. Morning commute: everyone waits at one stop and rides one bus
print("\n3. Morning commute...")
for i, person in enumerate(people):
    t = START + timedelta(minutes=5 * i)
    bus.publish(mobility.trip_phase_starting(t, person, TripPhase.waiting_for_bus("main_st")))
for i, person in enumerate(people):
    t = START + timedelta(hours=1, minutes=30 + i)
    bus.publish(mobility.trip_phase_starting(t, person, TripPhase.riding_bus("main_st", "bus_12")))
for i, person in enumerate(people):
    t = START + timedelta(hours=3, minutes=i)
    bus.publish(mobility.trip_phase_starting(t, person, TripPhase.walking()))
    bus.publish(mobility.person_enters_building(t, person, "office"))

# 4. Work day, then advance simulated time
print("\n4. Leaving the office...")
for i, person in enumerate(people):
    t = START + timedelta(hours=11, minutes=i)
    bus.publish(mobility.person_leaves_building(t, person, "office"))
scheduler.run_until(START + timedelta(hours=18))

# 5. Report
print("\n5. Summary")
for key, value in pandemic.get_summary().items():
    print(f"   {key}: {value}")
print(f"   infected: {sorted(pandemic.infected)}")
print(f"   hospitalized: {sorted(pandemic.hospitalized)}")
