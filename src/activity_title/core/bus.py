"""
Event Bus for activity-title.

Feeds, hosts and modules talk through one in-process bus. Delivery is
synchronous: a handler runs on whichever thread called ``publish``, so
presence handlers run on the feed's network thread and frame handlers on
the host thread.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """
    A message on the bus.

    Attributes:
        type: Dotted event name, e.g. "presence.updated" or "title.dispatched"
        source: Publisher id, e.g. "discord", "host", "title"
        account_id: Account the event concerns, if any
        payload: Event-specific fields
        timestamp: Creation time (UTC)
    """

    type: str
    source: str
    account_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class EventFilter:
    """Selects events by type and/or account. Unset criteria match anything."""

    def __init__(self, event_type: Optional[str] = None, account_id: Optional[str] = None):
        self.event_type = event_type
        self.account_id = account_id

    def matches(self, event: Event) -> bool:
        if self.event_type is not None and event.type != self.event_type:
            return False
        return self.account_id is None or event.account_id == self.account_id

    def __repr__(self) -> str:
        return f"EventFilter(event_type={self.event_type!r}, account_id={self.account_id!r})"


EventHandler = Callable[[Event], None]


@dataclass(frozen=True)
class _Subscription:
    handler: EventHandler
    event_filter: EventFilter


class EventBus:
    """
    Thread-safe, synchronous event bus.

    Subscriptions may change from any thread. ``publish`` delivers to a
    snapshot of the subscriptions taken when it starts, so handlers may
    subscribe or publish re-entrantly.
    """

    def __init__(self) -> None:
        self._subscriptions: List[_Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler, event_filter: Optional[EventFilter] = None) -> None:
        """
        Register a handler.

        Args:
            handler: Called with each matching Event
            event_filter: Which events to deliver (default: all)
        """
        subscription = _Subscription(handler, event_filter or EventFilter())
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed {handler.__name__} with {subscription.event_filter}")

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove every subscription of ``handler``."""
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s.handler != handler]
        logger.debug(f"Unsubscribed {handler.__name__}")

    def publish(self, event: Event) -> int:
        """
        Deliver an event to every matching handler.

        A handler that raises is logged and skipped; the publisher never
        sees the exception.

        Returns:
            Number of handlers the event was delivered to
        """
        with self._lock:
            subscriptions = list(self._subscriptions)

        logger.debug(f"Publishing {event.type} from {event.source}")
        delivered = 0
        for subscription in subscriptions:
            if not subscription.event_filter.matches(event):
                continue
            delivered += 1
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {subscription.handler.__name__} failed on {event.type}: {e}",
                    exc_info=True,
                )
        return delivered
