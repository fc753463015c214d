"""Data models for the occupancy ledger.

All records are frozen (immutable); the ledger replaces rather than edits them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Hashable


@dataclass(frozen=True)
class OccupancyRecord:
    """One person present in one space.

    Attributes:
        person_id: Who is present.
        entered_at: When they entered.
    """

    person_id: Hashable
    entered_at: datetime


@dataclass(frozen=True)
class Overlap:
    """Co-presence of a leaving person with another occupant.

    Attributes:
        person_id: The other occupant (still inside).
        duration: Time both were present, counted from whichever arrived later.
    """

    person_id: Hashable
    duration: timedelta
