"""
Mobility vocabulary shared by the transport simulation and the modules.

A shared space is somewhere several persons can be co-present: a building,
a bus stop, or a vehicle. The transport simulation reports movement through
three event types; helpers below build those events.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Hashable, Optional

from epidemic_spaces.core.bus import Event

# Event types published by the transport simulation
PERSON_ENTERED_BUILDING = "person.entered_building"
PERSON_LEFT_BUILDING = "person.left_building"
TRIP_PHASE_STARTED = "trip.phase_started"

MOBILITY_EVENT_TYPES = (
    PERSON_ENTERED_BUILDING,
    PERSON_LEFT_BUILDING,
    TRIP_PHASE_STARTED,
)


class SpaceKind(Enum):
    """Kind of shared space. Each kind has its own key space."""

    BUILDING = "building"
    BUS_STOP = "bus_stop"
    VEHICLE = "vehicle"


class TripPhaseType(Enum):
    """Phase of a trip that a person is starting.

    Only the bus-related phases and WALKING matter for contact tracking;
    everything else arrives as OTHER and is ignored.
    """

    WAITING_FOR_BUS = "waiting_for_bus"
    RIDING_BUS = "riding_bus"
    WALKING = "walking"
    OTHER = "other"


@dataclass(frozen=True)
class TripPhase:
    """A trip phase transition.

    Attributes:
        phase_type: Which phase is starting.
        stop: Bus stop, for WAITING_FOR_BUS and RIDING_BUS.
        vehicle: Vehicle boarded, for RIDING_BUS.
    """

    phase_type: TripPhaseType
    stop: Optional[Hashable] = None
    vehicle: Optional[Hashable] = None

    @classmethod
    def waiting_for_bus(cls, stop: Hashable) -> "TripPhase":
        return cls(TripPhaseType.WAITING_FOR_BUS, stop=stop)

    @classmethod
    def riding_bus(cls, stop: Hashable, vehicle: Hashable) -> "TripPhase":
        return cls(TripPhaseType.RIDING_BUS, stop=stop, vehicle=vehicle)

    @classmethod
    def walking(cls) -> "TripPhase":
        return cls(TripPhaseType.WALKING)

    @classmethod
    def other(cls) -> "TripPhase":
        return cls(TripPhaseType.OTHER)


def person_enters_building(
    now: datetime, person_id: Hashable, building: Hashable, source: str = "transit"
) -> Event:
    """Build a person.entered_building event."""
    return Event(
        type=PERSON_ENTERED_BUILDING,
        source=source,
        timestamp=now,
        person_id=person_id,
        payload={"building": building},
    )


def person_leaves_building(
    now: datetime, person_id: Hashable, building: Hashable, source: str = "transit"
) -> Event:
    """Build a person.left_building event."""
    return Event(
        type=PERSON_LEFT_BUILDING,
        source=source,
        timestamp=now,
        person_id=person_id,
        payload={"building": building},
    )


def trip_phase_starting(
    now: datetime, person_id: Hashable, phase: TripPhase, source: str = "transit"
) -> Event:
    """Build a trip.phase_started event."""
    return Event(
        type=TRIP_PHASE_STARTED,
        source=source,
        timestamp=now,
        person_id=person_id,
        payload={"phase": phase},
    )
