"""
Pandemic module for epidemic-spaces.

Models disease spread among people sharing buildings, bus stops and buses.

Features:
- Contact durations from per-space occupancy ledgers
- Stochastic transmission for contacts longer than a threshold
- Delayed hospitalization scheduled through the host Scheduler
- Reproducible runs from an injected, seeded generator
"""

from .module import PandemicModule
from .models import (
    CmdType,
    EngineResult,
    InfectionStatus,
    PandemicCmd,
    PandemicConfig,
    StatusChange,
)
from .engine import PandemicEngine
from .policy import TransmissionPolicy
from .adapter import MobilityEventAdapter

__all__ = [
    "PandemicModule",
    "PandemicEngine",
    "TransmissionPolicy",
    "MobilityEventAdapter",
    "CmdType",
    "EngineResult",
    "InfectionStatus",
    "PandemicCmd",
    "PandemicConfig",
    "StatusChange",
]
