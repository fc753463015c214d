"""The Core Logic Engine for the pandemic model.

This module contains the epidemic state machine. It accepts contacts, commands
and time, mutates infection state, and pushes future hospitalizations to the
scheduler it is handed. It never reads the wall clock and never creates its
own randomness: the generator is injected, so a fixed seed and a fixed
delivery order reproduce the whole trajectory.

Licensed under MIT License
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Hashable, Iterable, List, Optional

import numpy as np

from epidemic_spaces.core.errors import PreconditionError
from epidemic_spaces.core.scheduler import Command, Scheduler
from epidemic_spaces.modules.occupancy.models import Overlap

from .models import (
    CmdType,
    EngineResult,
    InfectionStatus,
    PandemicCmd,
    PandemicConfig,
    StatusChange,
)
from .policy import TransmissionPolicy

_LOGGER = logging.getLogger(__name__)


class PandemicEngine:
    """The functional core of the pandemic model.

    Person states move SUSCEPTIBLE -> INFECTED -> HOSPITALIZED and never back.
    The engine also owns the ride map (person -> vehicle currently ridden),
    since leaving a vehicle is only ever inferred.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        config: Optional[PandemicConfig] = None,
        module_id: str = "pandemic",
    ) -> None:
        """Initialize the engine.

        Args:
            rng: Seeded generator; every stochastic decision draws from it.
            config: Model tunables (defaults if None).
            module_id: Module ID placed on scheduled Command envelopes.
        """
        self.config = config or PandemicConfig()
        self.policy = TransmissionPolicy(self.config)
        self.module_id = module_id

        self._rng = rng
        self._infected: set = set()
        self._hospitalized: set = set()
        self._ride_map: Dict[Hashable, Hashable] = {}
        self._initialized = False

    # --- Read-only views ---

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def infected(self) -> frozenset:
        return frozenset(self._infected)

    @property
    def hospitalized(self) -> frozenset:
        return frozenset(self._hospitalized)

    @property
    def ride_map(self) -> Dict[Hashable, Hashable]:
        return dict(self._ride_map)

    def status_of(self, person_id: Hashable) -> InfectionStatus:
        """Current disease state of a person."""
        if person_id in self._hospitalized:
            return InfectionStatus.HOSPITALIZED
        if person_id in self._infected:
            return InfectionStatus.INFECTED
        return InfectionStatus.SUSCEPTIBLE

    # --- Lifecycle ---

    def initialize(
        self, now: datetime, population: Iterable[Hashable], scheduler: Scheduler
    ) -> EngineResult:
        """Seed the initially infected population. Must be called exactly once.

        Each person, in the order given, is infected independently with
        probability initial_infection_rate.

        Raises:
            PreconditionError: If the engine was already initialized.
        """
        if self._initialized:
            raise PreconditionError("Pandemic engine is already initialized")
        self._initialized = True

        result = EngineResult()
        count = 0
        for person_id in population:
            count += 1
            if self._bernoulli(self.config.initial_infection_rate):
                self._become_infected(now, person_id, "initial", None, scheduler, result)

        _LOGGER.info(
            f"Pandemic initialized at {now}: {len(self._infected)} of {count} people infected"
        )
        return result

    def introduce_infection(
        self, now: datetime, person_id: Hashable, scheduler: Scheduler
    ) -> EngineResult:
        """Infect a specific person (an index case). No-op if already infected."""
        self.require_initialized()
        result = EngineResult()
        if person_id not in self._infected:
            self._become_infected(now, person_id, "introduced", None, scheduler, result)
        return result

    # --- Contacts ---

    def transmission(
        self,
        now: datetime,
        person_id: Hashable,
        overlaps: List[Overlap],
        scheduler: Scheduler,
    ) -> EngineResult:
        """Apply the transmission rule to a person leaving a shared space.

        Pairs are evaluated in ledger order and state changes apply at once, so
        with three or more occupants a pair can see an infection caused by an
        earlier pair of the same batch.

        Args:
            now: When the person left; new infections are dated here.
            person_id: The person who left.
            overlaps: Co-presence with everyone still inside.
            scheduler: Receives hospitalization commands.
        """
        self.require_initialized()
        result = EngineResult()

        for overlap in overlaps:
            other = overlap.person_id
            person_infected = person_id in self._infected
            other_infected = other in self._infected

            if not self.policy.is_eligible(person_infected, other_infected, overlap.duration):
                continue
            if not self.policy.trial(self._rng):
                continue

            if person_infected:
                self._become_infected(now, other, "transmission", person_id, scheduler, result)
            else:
                self._become_infected(now, person_id, "transmission", other, scheduler, result)

        return result

    # --- Rides ---

    def start_ride(self, person_id: Hashable, vehicle: Hashable) -> None:
        """Remember which vehicle a person boarded."""
        self.require_initialized()
        self._ride_map[person_id] = vehicle

    def end_ride(self, person_id: Hashable) -> Optional[Hashable]:
        """Forget a person's ride. Returns the vehicle, or None if not riding."""
        self.require_initialized()
        return self._ride_map.pop(person_id, None)

    # --- Commands ---

    def handle_cmd(self, now: datetime, cmd: PandemicCmd) -> EngineResult:
        """Apply a command delivered by the scheduler.

        BECOME_HOSPITALIZED marks the person hospitalized without re-checking
        whether they are still infected.
        """
        self.require_initialized()
        result = EngineResult()

        if cmd.cmd_type is CmdType.BECOME_HOSPITALIZED:
            previous = self.status_of(cmd.person_id)
            self._hospitalized.add(cmd.person_id)
            result.transitions.append(
                StatusChange(
                    person_id=cmd.person_id,
                    previous=previous,
                    new=InfectionStatus.HOSPITALIZED,
                    reason="hospitalized",
                    time=now,
                )
            )
            _LOGGER.info(f"{cmd.person_id} hospitalized at {now}")
        else:
            raise PreconditionError(f"Unknown pandemic command: {cmd}")

        return result

    # --- Internals ---

    def _become_infected(
        self,
        now: datetime,
        person_id: Hashable,
        reason: str,
        source_person_id: Optional[Hashable],
        scheduler: Scheduler,
        result: EngineResult,
    ) -> None:
        previous = self.status_of(person_id)
        self._infected.add(person_id)
        result.transitions.append(
            StatusChange(
                person_id=person_id,
                previous=previous,
                new=InfectionStatus.INFECTED,
                reason=reason,
                time=now,
                source_person_id=source_person_id,
            )
        )
        _LOGGER.info(
            f"{person_id} infected at {now} ({reason}"
            f"{f' by {source_person_id}' if source_person_id is not None else ''})"
        )

        if self._bernoulli(self.config.hospitalization_probability):
            when = now + self._rand_duration(
                self.config.hospitalization_delay_min, self.config.hospitalization_delay_max
            )
            cmd = PandemicCmd.become_hospitalized(person_id)
            scheduler.push(when, Command(self.module_id, cmd))
            result.scheduled.append((when, cmd))
            _LOGGER.debug(f"  {person_id}: hospitalization scheduled for {when}")

    def _bernoulli(self, p: float) -> bool:
        return bool(self._rng.random() < p)

    def _rand_duration(self, low: timedelta, high: timedelta) -> timedelta:
        """Uniform duration in [low, high)."""
        if high <= low:
            raise PreconditionError(f"Empty duration range [{low}, {high})")
        seconds = self._rng.uniform(low.total_seconds(), high.total_seconds())
        return timedelta(seconds=float(seconds))

    def require_initialized(self) -> None:
        if not self._initialized:
            raise PreconditionError("Pandemic engine used before initialize()")

    # --- Persistence ---

    def export_state(self) -> Dict[str, Any]:
        """Export infection state, rides and the generator state."""
        return {
            "initialized": self._initialized,
            "infected": sorted(self._infected),
            "hospitalized": sorted(self._hospitalized),
            "rides": [[person, vehicle] for person, vehicle in self._ride_map.items()],
            "rng": self._rng.bit_generator.state,
        }

    def restore_state(self, state: Dict[str, Any]) -> None:
        """Restore state produced by export_state()."""
        self._initialized = state.get("initialized", True)
        self._infected = set(state.get("infected", []))
        self._hospitalized = set(state.get("hospitalized", []))
        self._ride_map = {person: vehicle for person, vehicle in state.get("rides", [])}
        if "rng" in state:
            self._rng.bit_generator.state = state["rng"]

        _LOGGER.info(
            f"Restored pandemic state: {len(self._infected)} infected, "
            f"{len(self._hospitalized)} hospitalized, {len(self._ride_map)} riding"
        )
