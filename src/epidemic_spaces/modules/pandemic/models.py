"""Data models for the pandemic module.

State records and commands are frozen (immutable). PandemicConfig is built
once from the module configuration dict.

Licensed under MIT License
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional, Tuple

from epidemic_spaces.core.errors import PreconditionError


class InfectionStatus(Enum):
    """Disease state of a person. Transitions only move forward."""

    SUSCEPTIBLE = "susceptible"
    INFECTED = "infected"
    HOSPITALIZED = "hospitalized"


class CmdType(Enum):
    """Tag of a scheduled pandemic command.

    BECOME_HOSPITALIZED: Person is admitted to hospital when the command fires.
    """

    BECOME_HOSPITALIZED = "become_hospitalized"


@dataclass(frozen=True)
class PandemicCmd:
    """A pandemic command delivered back by the Scheduler.

    Attributes:
        cmd_type: Which command this is.
        person_id: The person the command applies to.
    """

    cmd_type: CmdType
    person_id: Hashable

    @classmethod
    def become_hospitalized(cls, person_id: Hashable) -> "PandemicCmd":
        return cls(CmdType.BECOME_HOSPITALIZED, person_id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for a persisted scheduler queue."""
        return {"type": self.cmd_type.value, "person_id": self.person_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PandemicCmd":
        """Deserialize a command produced by to_dict().

        Raises:
            ValueError: If the command type is unknown.
        """
        return cls(CmdType(data["type"]), data["person_id"])


@dataclass(frozen=True)
class PandemicConfig:
    """Tunables of the pandemic model.

    Attributes:
        transmission_probability: Chance an eligible contact transmits.
        transmission_threshold: Contacts must last strictly longer than this.
        hospitalization_probability: Chance a new infection leads to hospital.
        hospitalization_delay_min: Earliest hospitalization after infection.
        hospitalization_delay_max: Hospitalization happens before this delay.
        initial_infection_rate: Chance each person is infected at start.
    """

    transmission_probability: float = 0.1
    transmission_threshold: timedelta = timedelta(hours=1)
    hospitalization_probability: float = 0.1
    hospitalization_delay_min: timedelta = timedelta(hours=1)
    hospitalization_delay_max: timedelta = timedelta(hours=3)
    initial_infection_rate: float = 0.1

    def __post_init__(self) -> None:
        for name in (
            "transmission_probability",
            "hospitalization_probability",
            "initial_infection_rate",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        if self.transmission_threshold < timedelta(0):
            raise ValueError(
                f"transmission_threshold must not be negative, got {self.transmission_threshold}"
            )

        if self.hospitalization_delay_max <= self.hospitalization_delay_min:
            raise PreconditionError(
                f"Empty hospitalization delay range "
                f"[{self.hospitalization_delay_min}, {self.hospitalization_delay_max})"
            )


@dataclass(frozen=True)
class StatusChange:
    """A record of a disease state change for reporting and debugging."""

    person_id: Hashable
    previous: InfectionStatus
    new: InfectionStatus
    reason: str
    time: datetime
    source_person_id: Optional[Hashable] = None


@dataclass
class EngineResult:
    """What happened while the engine processed one input."""

    transitions: List[StatusChange] = field(default_factory=list)
    scheduled: List[Tuple[datetime, PandemicCmd]] = field(default_factory=list)

    def extend(self, other: "EngineResult") -> None:
        self.transitions.extend(other.transitions)
        self.scheduled.extend(other.scheduled)
