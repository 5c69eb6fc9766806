"""
Core components of activity-title.

This package contains:
- bus: Event Bus implementation
- dispatcher: FrameworkDispatcher for designated-thread delivery
- feed: PresenceFeed interface and connection state
"""

from activity_title.core.bus import Event, EventBus, EventFilter
from activity_title.core.dispatcher import FrameworkDispatcher
from activity_title.core.feed import ConnectionState, PresenceFeed

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "FrameworkDispatcher",
    "ConnectionState",
    "PresenceFeed",
]
