"""
Occupancy ledger for epidemic-spaces.

Tracks who is inside each shared space and since when, and reports pairwise
co-presence durations when someone leaves.
"""

from .ledger import OccupancyLedger
from .models import OccupancyRecord, Overlap

__all__ = [
    "OccupancyLedger",
    "OccupancyRecord",
    "Overlap",
]
