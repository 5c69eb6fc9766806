"""
Presence feed interface.

The feed owns the network session with the presence provider and publishes
``presence.updated`` events on the Event Bus. Session establishment
(login, gateway handshake, reconnects) belongs to the concrete feed; the
rest of the system only observes its connection state.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from activity_title.core.bus import Event, EventBus

logger = logging.getLogger(__name__)

PRESENCE_UPDATED = "presence.updated"


class ConnectionState(Enum):
    """Connection state of a presence feed."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class PresenceFeed(ABC):
    """
    Abstract presence feed.

    Concrete feeds call ``publish_presence`` from whatever thread their
    network client delivers on.
    """

    def __init__(self, bus: Optional[EventBus] = None, source: str = "feed") -> None:
        self._bus = bus
        self._source = source

    def set_bus(self, bus: EventBus) -> None:
        """Set the bus presence events are published to."""
        self._bus = bus

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection state."""
        pass

    @abstractmethod
    def connect(self) -> None:
        """Start the session. Returns without waiting for it to connect."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Stop the session."""
        pass

    def publish_presence(self, account_id: str, snapshot) -> None:
        """
        Publish a presence snapshot for an account.

        Args:
            account_id: Account the presence belongs to
            snapshot: PresenceSnapshot for that account
        """
        if not self._bus:
            logger.debug(f"No bus attached, dropping presence for {account_id}")
            return

        self._bus.publish(
            Event(
                type=PRESENCE_UPDATED,
                source=self._source,
                account_id=account_id,
                payload={"snapshot": snapshot},
            )
        )


class MockPresenceFeed(PresenceFeed):
    """
    Mock feed for testing.

    Connects instantly and records connect/disconnect calls.
    """

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        super().__init__(bus, source="mock")
        self._state = ConnectionState.DISCONNECTED
        self.connect_calls = 0
        self.disconnect_calls = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def set_state(self, state: ConnectionState) -> None:
        """Force a connection state for testing."""
        self._state = state

    def connect(self) -> None:
        self.connect_calls += 1
        self._state = ConnectionState.CONNECTED

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._state = ConnectionState.DISCONNECTED
