"""
activity-title: Presence-driven title updates for a host application.

This library turns a user's presence (games, music, streams) into a short,
styled title:
- Rule matching with priorities and filter templates
- Throttled, deduplicated title rendering
- Thread-affine dispatch to the host
- Event Bus for wiring feeds, modules and hosts together
"""

from activity_title.core.bus import Event, EventBus, EventFilter
from activity_title.core.dispatcher import FrameworkDispatcher

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "FrameworkDispatcher",
]
