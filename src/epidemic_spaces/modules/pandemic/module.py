"""PandemicModule - Native integration of the pandemic model.

This module wraps the pandemic engine and the mobility event adapter and
integrates them with the epidemic-spaces kernel (EventBus, Scheduler).
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Hashable, Iterable, Optional

import numpy as np

from epidemic_spaces.modules.base import SimulationModule
from epidemic_spaces.core.bus import Event, EventBus, EventFilter
from epidemic_spaces.core.errors import PreconditionError
from epidemic_spaces.core.mobility import MOBILITY_EVENT_TYPES, SpaceKind
from epidemic_spaces.core.scheduler import Scheduler

from .adapter import MobilityEventAdapter
from .engine import PandemicEngine
from .models import EngineResult, InfectionStatus, PandemicCmd, PandemicConfig

logger = logging.getLogger(__name__)


class PandemicModule(SimulationModule):
    """
    Pandemic module.

    Features:
    - Per-kind occupancy ledgers for buildings, bus stops and vehicles
    - Pairwise contact durations computed when someone leaves a space
    - Stochastic transmission between infected and susceptible contacts
    - Hospitalization scheduled through the host Scheduler
    - State persistence including the random generator state

    Events Consumed:
    - person.entered_building, person.left_building, trip.phase_started

    Events Emitted:
    - pandemic.infected: A person became infected
    - pandemic.hospitalized: A person was hospitalized

    Note: This module does not drive simulated time. The host publishes
    mobility events in time order and advances the Scheduler, which delivers
    hospitalization commands back to handle_cmd().
    """

    def __init__(self, rng: np.random.Generator, config: Optional[Dict] = None) -> None:
        """
        Args:
            rng: Seeded generator, e.g. numpy.random.default_rng(seed)
            config: Partial configuration dict; missing keys use default_config()
        """
        self._bus: Optional[EventBus] = None
        self._scheduler: Optional[Scheduler] = None

        config_dict = self.default_config()
        if config:
            config_dict.update(self.migrate_config(dict(config)))
        self._config_dict = config_dict

        self.config = self._build_config(config_dict)
        self._engine = PandemicEngine(rng, self.config, module_id=self.id)
        self._adapter = MobilityEventAdapter(self._engine)

    @property
    def id(self) -> str:
        return "pandemic"

    @property
    def CURRENT_CONFIG_VERSION(self) -> int:
        return 1

    def attach(self, bus: EventBus, scheduler: Scheduler) -> None:
        """Attach to the event bus and register with the scheduler."""
        logger.info("Attaching PandemicModule")
        self._bus = bus
        self._scheduler = scheduler

        for event_type in MOBILITY_EVENT_TYPES:
            bus.subscribe(self._on_mobility_event, EventFilter(event_type=event_type))

        scheduler.register_handler(self.id, self.handle_cmd)

    def _build_config(self, config_dict: Dict[str, Any]) -> PandemicConfig:
        """Build PandemicConfig from a configuration dict (durations in seconds)."""
        return PandemicConfig(
            transmission_probability=float(config_dict["transmission_probability"]),
            transmission_threshold=timedelta(seconds=config_dict["transmission_threshold"]),
            hospitalization_probability=float(config_dict["hospitalization_probability"]),
            hospitalization_delay_min=timedelta(seconds=config_dict["hospitalization_delay_min"]),
            hospitalization_delay_max=timedelta(seconds=config_dict["hospitalization_delay_max"]),
            initial_infection_rate=float(config_dict["initial_infection_rate"]),
        )

    def _require_attached(self) -> Scheduler:
        if self._scheduler is None:
            raise PreconditionError("PandemicModule used before attach()")
        return self._scheduler

    # --- Lifecycle ---

    def initialize(self, population: Iterable[Hashable], now: Optional[datetime] = None) -> None:
        """
        Seed initial infections. Call once, after attach() and before any event.

        Args:
            population: Person IDs; iteration order affects which are seeded
            now: Simulation start (defaults to the scheduler's current time)

        Raises:
            PreconditionError: If not attached or already initialized
        """
        scheduler = self._require_attached()
        if now is None:
            now = scheduler.now

        result = self._engine.initialize(now, population, scheduler)
        self._emit(result)

    def introduce_infection(self, person_id: Hashable, now: Optional[datetime] = None) -> None:
        """Infect a specific person (an index case)."""
        scheduler = self._require_attached()
        if now is None:
            now = scheduler.now

        self._emit(self._engine.introduce_infection(now, person_id, scheduler))

    def seed_occupancy(
        self, kind: SpaceKind, space: Hashable, person_id: Hashable, since: datetime
    ) -> None:
        """
        Register a person already inside a space at simulation start.

        Without this, their first leave would be dropped as an anomaly.
        """
        self._adapter.seed_occupancy(kind, space, person_id, since)
        logger.debug(f"Seeded {person_id} in {kind.value} {space} since {since}")

    # --- Event and command handling ---

    def _on_mobility_event(self, event: Event) -> None:
        """Handle a mobility event from the transport simulation."""
        scheduler = self._require_attached()
        result = self._adapter.handle_event(event, scheduler)
        self._emit(result)

    def handle_cmd(self, now: datetime, cmd: Any) -> None:
        """
        Apply a command delivered by the Scheduler.

        Accepts a PandemicCmd, or its to_dict() form when the host persisted
        and replayed its queue.
        """
        if isinstance(cmd, dict):
            cmd = PandemicCmd.from_dict(cmd)

        result = self._engine.handle_cmd(now, cmd)
        self._emit(result)

    def _emit(self, result: EngineResult) -> None:
        """Emit semantic pandemic events for each state change."""
        if self._bus is None:
            return

        for change in result.transitions:
            event_type = (
                "pandemic.hospitalized"
                if change.new is InfectionStatus.HOSPITALIZED
                else "pandemic.infected"
            )
            self._bus.publish(
                Event(
                    type=event_type,
                    source=self.id,
                    timestamp=change.time,
                    person_id=change.person_id,
                    payload={
                        "previous": change.previous.value,
                        "status": change.new.value,
                        "reason": change.reason,
                        "source_person_id": change.source_person_id,
                    },
                )
            )

    # --- Queries ---

    @property
    def infected(self) -> frozenset:
        """Everyone currently infected (including hospitalized)."""
        return self._engine.infected

    @property
    def hospitalized(self) -> frozenset:
        """Everyone hospitalized."""
        return self._engine.hospitalized

    def get_person_state(self, person_id: Hashable) -> Dict[str, Any]:
        """Get current disease and ride state for a person."""
        return {
            "status": self._engine.status_of(person_id).value,
            "riding": self._engine.ride_map.get(person_id),
        }

    def get_summary(self) -> Dict[str, int]:
        """Counts of infected, hospitalized, riders, occupants and anomalies."""
        summary = {
            "infected": len(self._engine.infected),
            "hospitalized": len(self._engine.hospitalized),
            "riding": len(self._engine.ride_map),
        }
        summary.update(self._adapter.summary())
        return summary

    # --- Persistence ---

    def dump_state(self) -> Dict:
        """Export engine and ledger state for persistence."""
        return {
            "version": self.CURRENT_CONFIG_VERSION,
            "engine": self._engine.export_state(),
            "ledgers": {
                kind.value: ledger.export_state() for kind, ledger in self._adapter.ledgers.items()
            },
            "anomalies": self._adapter.anomaly_count,
        }

    def restore_state(self, state: Dict) -> None:
        """Restore engine and ledger state from persistence."""
        if not state:
            logger.warning("Cannot restore pandemic state: nothing to restore")
            return

        self._engine.restore_state(state["engine"])
        for kind, ledger in self._adapter.ledgers.items():
            ledger.restore_state(state.get("ledgers", {}).get(kind.value, []))
        self._adapter.anomaly_count = state.get("anomalies", 0)
        logger.info("Restored pandemic module state")

    # --- Configuration ---

    def default_config(self) -> Dict:
        """Default model configuration (durations in seconds)."""
        return {
            "version": self.CURRENT_CONFIG_VERSION,
            "transmission_probability": 0.1,
            "transmission_threshold": 3600,  # contacts must last longer than 1 hour
            "hospitalization_probability": 0.1,
            "hospitalization_delay_min": 3600,  # 1 hour
            "hospitalization_delay_max": 10800,  # 3 hours
            "initial_infection_rate": 0.1,
        }

    def config_schema(self) -> Dict:
        """JSON schema for the module configuration."""
        return {
            "type": "object",
            "properties": {
                "transmission_probability": {
                    "type": "number",
                    "title": "Transmission Probability",
                    "description": "Chance that an eligible contact transmits the disease",
                    "minimum": 0,
                    "maximum": 1,
                    "default": 0.1,
                },
                "transmission_threshold": {
                    "type": "integer",
                    "title": "Contact Threshold (seconds)",
                    "description": "Contacts must last strictly longer than this to count",
                    "minimum": 0,
                    "default": 3600,
                },
                "hospitalization_probability": {
                    "type": "number",
                    "title": "Hospitalization Probability",
                    "minimum": 0,
                    "maximum": 1,
                    "default": 0.1,
                },
                "hospitalization_delay_min": {
                    "type": "integer",
                    "title": "Minimum Hospitalization Delay (seconds)",
                    "minimum": 0,
                    "default": 3600,
                },
                "hospitalization_delay_max": {
                    "type": "integer",
                    "title": "Maximum Hospitalization Delay (seconds)",
                    "description": "Exclusive upper bound; must exceed the minimum",
                    "minimum": 1,
                    "default": 10800,
                },
                "initial_infection_rate": {
                    "type": "number",
                    "title": "Initial Infection Rate",
                    "description": "Chance each person is infected at simulation start",
                    "minimum": 0,
                    "maximum": 1,
                    "default": 0.1,
                },
            },
        }

    def migrate_config(self, config: Dict) -> Dict:
        """Migrate configuration from older versions."""
        version = config.get("version", 0)
        if version == self.CURRENT_CONFIG_VERSION:
            return config

        # v0 stored the delay range as a [min, max] pair
        if "hospitalization_delay" in config:
            low, high = config.pop("hospitalization_delay")
            config["hospitalization_delay_min"] = low
            config["hospitalization_delay_max"] = high

        config["version"] = self.CURRENT_CONFIG_VERSION
        return config
