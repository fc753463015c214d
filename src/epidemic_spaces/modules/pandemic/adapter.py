"""MobilityEventAdapter - maps mobility events onto occupancy ledgers.

Each shared space kind has its own ledger. Whenever somebody successfully
leaves a space, the resulting overlaps are handed to the engine's
transmission rule.
"""

import logging
from datetime import datetime
from typing import Dict, Hashable

from epidemic_spaces.core.bus import Event
from epidemic_spaces.core.mobility import (
    PERSON_ENTERED_BUILDING,
    PERSON_LEFT_BUILDING,
    TRIP_PHASE_STARTED,
    SpaceKind,
    TripPhase,
    TripPhaseType,
)
from epidemic_spaces.core.scheduler import Scheduler
from epidemic_spaces.modules.occupancy import OccupancyLedger

from .engine import PandemicEngine
from .models import EngineResult

logger = logging.getLogger(__name__)


class MobilityEventAdapter:
    """
    Translates mobility events into ledger operations.

    Mapping:
    - person.entered_building -> building enter
    - person.left_building -> building leave
    - WAITING_FOR_BUS(stop) -> bus stop enter
    - RIDING_BUS(stop, vehicle) -> bus stop leave, then vehicle enter
    - WALKING -> vehicle leave, if the person was riding

    There is no "left vehicle" event: the only phase that can follow a bus
    ride is walking, so the ride map on the engine recovers the vehicle.

    A leave for a person the ledger never saw enter is a data anomaly (for
    example someone already inside a building when the run started). It is
    logged, counted in anomaly_count and dropped.
    """

    def __init__(self, engine: PandemicEngine) -> None:
        self.engine = engine
        self.ledgers: Dict[SpaceKind, OccupancyLedger] = {
            SpaceKind.BUILDING: OccupancyLedger("building"),
            SpaceKind.BUS_STOP: OccupancyLedger("bus stop"),
            SpaceKind.VEHICLE: OccupancyLedger("vehicle"),
        }
        self.anomaly_count = 0

    def handle_event(self, event: Event, scheduler: Scheduler) -> EngineResult:
        """
        Process one mobility event.

        Args:
            event: Event from the transport simulation
            scheduler: Receives any hospitalization commands

        Returns:
            EngineResult with infections caused by this event
        """
        now = event.timestamp
        person_id = event.person_id

        if event.type == PERSON_ENTERED_BUILDING:
            self._enter(SpaceKind.BUILDING, now, person_id, event.payload["building"])
            return EngineResult()

        if event.type == PERSON_LEFT_BUILDING:
            return self._leave(
                SpaceKind.BUILDING, now, person_id, event.payload["building"], scheduler
            )

        if event.type == TRIP_PHASE_STARTED:
            return self._on_trip_phase(now, person_id, event.payload["phase"], scheduler)

        return EngineResult()

    def seed_occupancy(
        self, kind: SpaceKind, space: Hashable, person_id: Hashable, since: datetime
    ) -> None:
        """
        Register someone who was already inside a space when the run started.

        Use this for occupants that will leave without ever having been seen
        entering; their later leave then yields overlaps instead of an anomaly.
        """
        self.engine.require_initialized()
        self.ledgers[kind].enter(since, person_id, space)
        if kind is SpaceKind.VEHICLE:
            self.engine.start_ride(person_id, space)

    def _on_trip_phase(
        self, now: datetime, person_id: Hashable, phase: TripPhase, scheduler: Scheduler
    ) -> EngineResult:
        if phase.phase_type is TripPhaseType.WAITING_FOR_BUS:
            self._enter(SpaceKind.BUS_STOP, now, person_id, phase.stop)
            return EngineResult()

        if phase.phase_type is TripPhaseType.RIDING_BUS:
            result = self._leave(SpaceKind.BUS_STOP, now, person_id, phase.stop, scheduler)
            self._enter(SpaceKind.VEHICLE, now, person_id, phase.vehicle)
            self.engine.start_ride(person_id, phase.vehicle)
            return result

        if phase.phase_type is TripPhaseType.WALKING:
            # Walking is the only phase after a bus ride; most walks aren't one
            vehicle = self.engine.end_ride(person_id)
            if vehicle is None:
                return EngineResult()
            return self._leave(SpaceKind.VEHICLE, now, person_id, vehicle, scheduler)

        return EngineResult()

    def _enter(self, kind: SpaceKind, now: datetime, person_id: Hashable, space: Hashable) -> None:
        self.engine.require_initialized()
        self.ledgers[kind].enter(now, person_id, space)

    def _leave(
        self,
        kind: SpaceKind,
        now: datetime,
        person_id: Hashable,
        space: Hashable,
        scheduler: Scheduler,
    ) -> EngineResult:
        self.engine.require_initialized()
        overlaps = self.ledgers[kind].leave(now, person_id, space)
        if overlaps is None:
            self.anomaly_count += 1
            logger.warning(
                f"{person_id} left {kind.value} {space} at {now} without a recorded entry; "
                f"dropping event"
            )
            return EngineResult()

        return self.engine.transmission(now, person_id, overlaps, scheduler)

    def occupancy(self, kind: SpaceKind) -> OccupancyLedger:
        """The ledger for one space kind."""
        return self.ledgers[kind]

    def summary(self) -> Dict[str, int]:
        """Occupant counts per space kind plus the anomaly count."""
        counts: Dict[str, int] = {
            f"{kind.value}_occupants": ledger.occupant_count()
            for kind, ledger in self.ledgers.items()
        }
        counts["anomalies"] = self.anomaly_count
        return counts
