"""
Core components of the epidemic-spaces kernel.

This package contains:
- bus: Event Bus implementation
- mobility: Shared space kinds, trip phases and mobility event helpers
- scheduler: Time-ordered command dispatcher
- errors: Fatal integration errors
"""

from epidemic_spaces.core.errors import PreconditionError
from epidemic_spaces.core.bus import Event, EventBus, EventFilter
from epidemic_spaces.core.mobility import SpaceKind, TripPhase, TripPhaseType
from epidemic_spaces.core.scheduler import Command, Scheduler

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
