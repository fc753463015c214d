"""
Modules package for epidemic-spaces.

Modules are plug-ins that add behavior to the simulation.
"""

from epidemic_spaces.modules.base import SimulationModule

__all__ = ["SimulationModule"]
