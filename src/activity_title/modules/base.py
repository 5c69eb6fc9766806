"""
Plug-in contract for activity-title modules.

A host wires modules to one EventBus; each module owns its own config dict,
versioned so stored configs from older releases can be upgraded on load.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from activity_title.core.bus import EventBus


class HostModule(ABC):
    """
    A unit of behavior hosted next to the Event Bus.

    Subclasses subscribe to the events they consume in ``attach`` and publish
    their own events back onto the same bus.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable module identifier, also used as the event source."""

    @property
    @abstractmethod
    def CURRENT_CONFIG_VERSION(self) -> int:
        """Version written into configs produced by this release."""

    @abstractmethod
    def attach(self, bus: "EventBus") -> None:
        """Subscribe to ``bus`` and keep it for publishing."""

    @abstractmethod
    def default_config(self) -> Dict[str, Any]:
        """Config dict for a fresh install."""

    @abstractmethod
    def config_schema(self) -> Dict[str, Any]:
        """
        Describe the config dict for editors.

        Returns:
            JSON-schema-like dict; editors render forms from it
        """

    def migrate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upgrade a stored config to CURRENT_CONFIG_VERSION.

        The base implementation has nothing to upgrade.
        """
        return config

    def on_config_changed(self, config: Dict[str, Any]) -> None:
        """Apply a config dict that replaced the current one."""
