"""
epidemic-spaces: Disease spread through shared spaces in a mobility simulation.

This library provides:
- Occupancy ledgers for buildings, bus stops and vehicles
- Contact-based stochastic transmission
- A time-ordered Scheduler for future commands
- A synchronous Event Bus connecting the transport simulation to modules
"""

from epidemic_spaces.core.errors import PreconditionError
from epidemic_spaces.core.bus import Event, EventBus, EventFilter
from epidemic_spaces.core.mobility import SpaceKind, TripPhase, TripPhaseType
from epidemic_spaces.core.scheduler import Command, Scheduler

__version__ = "0.1.0"

__all__ = [
    "PreconditionError",
    "Event",
    "EventBus",
    "EventFilter",
    "SpaceKind",
    "TripPhase",
    "TripPhaseType",
    "Command",
    "Scheduler",
]
