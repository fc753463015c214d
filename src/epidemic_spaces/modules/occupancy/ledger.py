"""Occupancy ledger: who is inside each space of one kind, and since when.

Concurrency per space is usually small but unbounded, so each space keeps a
plain insertion-ordered list and leave() scans it linearly.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

from .models import OccupancyRecord, Overlap

_LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class OccupancyLedger(Generic[K]):
    """Per-space occupancy for one kind of shared space.

    One instance exists per space kind (buildings, bus stops, vehicles); the key
    type only needs equality and hashing.
    """

    def __init__(self, name: str = "space") -> None:
        """Initialize an empty ledger.

        Args:
            name: Label used in log messages (e.g. "building").
        """
        self.name = name
        self._occupants: Dict[K, List[OccupancyRecord]] = {}

    def enter(self, now: datetime, person_id: Hashable, space: K) -> None:
        """Record that a person entered a space.

        A person must not enter a space they are already recorded in; the ledger
        does not check this.
        """
        self._occupants.setdefault(space, []).append(OccupancyRecord(person_id, now))
        _LOGGER.debug(f"{person_id} entered {self.name} {space} at {now}")

    def leave(self, now: datetime, person_id: Hashable, space: K) -> Optional[List[Overlap]]:
        """Record that a person left a space.

        Args:
            now: When the person left.
            person_id: Who left.
            space: The space they left.

        Returns:
            One Overlap per remaining occupant, in the order they entered, or None
            if the person was not recorded in the space. In that case nothing is
            modified.
        """
        records = self._occupants.get(space)
        if not records:
            return None

        inside_since: Optional[datetime] = None
        for index, record in enumerate(records):
            if record.person_id == person_id:
                inside_since = record.entered_at
                del records[index]
                break

        if inside_since is None:
            return None

        if not records:
            del self._occupants[space]

        _LOGGER.debug(f"{person_id} left {self.name} {space} at {now}")
        return [
            Overlap(record.person_id, now - max(record.entered_at, inside_since))
            for record in records
        ]

    def occupants(self, space: K) -> List[OccupancyRecord]:
        """Current occupants of a space, in the order they entered."""
        return list(self._occupants.get(space, []))

    def is_present(self, person_id: Hashable, space: K) -> bool:
        """Check whether a person is recorded in a space."""
        return any(r.person_id == person_id for r in self._occupants.get(space, []))

    def spaces(self) -> Iterator[K]:
        """Iterate over spaces that currently have at least one occupant."""
        return iter(list(self._occupants))

    def occupant_count(self) -> int:
        """Total number of occupancy records across all spaces."""
        return sum(len(records) for records in self._occupants.values())

    def __len__(self) -> int:
        return len(self._occupants)

    def export_state(self) -> List[Dict[str, Any]]:
        """Export ledger contents as a JSON-friendly list."""
        return [
            {
                "space": space,
                "occupants": [
                    {"person_id": r.person_id, "entered_at": r.entered_at.isoformat()}
                    for r in records
                ],
            }
            for space, records in self._occupants.items()
        ]

    def restore_state(self, state: List[Dict[str, Any]]) -> None:
        """Replace ledger contents with previously exported state."""
        self._occupants = {}
        for entry in state:
            records = [
                OccupancyRecord(o["person_id"], datetime.fromisoformat(o["entered_at"]))
                for o in entry["occupants"]
            ]
            if records:
                self._occupants[entry["space"]] = records
        _LOGGER.info(f"Restored {self.name} ledger with {len(self._occupants)} occupied spaces")
