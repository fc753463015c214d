"""
Base classes and protocols for epidemic-spaces modules.

Modules are plug-ins that add behavior to the simulation.
"""

from abc import ABC, abstractmethod
from typing import Dict


class SimulationModule(ABC):
    """
    Base class for simulation modules.

    A module:
    - Receives events from the Event Bus
    - Pushes future commands to the Scheduler and handles them when due
    - Maintains its own runtime state
    - Emits semantic events that other modules can consume
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier for this module type."""
        pass

    @property
    @abstractmethod
    def CURRENT_CONFIG_VERSION(self) -> int:
        """Current configuration version for this module."""
        pass

    @abstractmethod
    def attach(self, bus, scheduler) -> None:
        """
        Attach the module to the kernel.

        Register event subscriptions and command handlers, and capture references
        to bus and scheduler.

        Args:
            bus: EventBus instance
            scheduler: Scheduler instance
        """
        pass

    @abstractmethod
    def default_config(self) -> Dict:
        """
        Get default configuration for this module.

        Returns:
            Default configuration dict
        """
        pass

    @abstractmethod
    def config_schema(self) -> Dict:
        """
        Get JSON-schema-like definition of the module configuration.

        Returns:
            Schema dict describing every configuration key
        """
        pass

    def migrate_config(self, config: Dict) -> Dict:
        """
        Migrate configuration to current version.

        Default implementation returns config unchanged.
        Override to handle version upgrades.

        Args:
            config: Configuration dict (potentially older version)

        Returns:
            Migrated configuration dict
        """
        return config

    def dump_state(self) -> Dict:
        """
        Serialize runtime state for persistence.

        Optional: Override to enable state dump/restore.
        Host simulation is responsible for storage.

        Returns:
            Serialized state dict
        """
        return {}

    def restore_state(self, state: Dict) -> None:
        """
        Restore runtime state from serialized form.

        Optional: Override to enable state dump/restore.

        Args:
            state: Previously serialized state dict
        """
        pass
