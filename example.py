#!/usr/bin/env python3
"""
Quick example demonstrating activity-title basic usage.

Run with: PYTHONPATH=src python3 example.py
"""

import logging
import threading

from activity_title.core.bus import EventBus, Event
from activity_title.core.feed import MockPresenceFeed
from activity_title.modules.title import (
    MockTitleSinkAdapter,
    TitleConfig,
    default_rules,
    TitleModule,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

print("=" * 60)
print("activity-title Example")
print("=" * 60)

# 1. Core components
print("\n1. Creating core components...")
bus = EventBus()
feed = MockPresenceFeed()
sink = MockTitleSinkAdapter()
print("   ✓ EventBus, presence feed and title sink created")

# 2. Attach the Title module
print("\n2. Attaching Title module...")
title = TitleModule(sink=sink, feed=feed, config=TitleConfig(rules=default_rules()))
title.attach(bus)
print(f"   ✓ Module '{title.id}' attached, feed {title.current_connection_state().value}")
for rule in title.config.rules:
    print(f"   ✓ Rule: {rule.name} (priority={rule.priority})")

dispatched = []
bus.subscribe(
    lambda e: dispatched.append(e.payload["title"]) if e.type == "title.dispatched" else None
)


def run_frames(seconds: float, frame: float = 0.5) -> None:
    """Publish host frame ticks for a span of time."""
    for _ in range(int(seconds / frame)):
        bus.publish(Event(type="framework.update", source="host", payload={"delta_seconds": frame}))


# 3. Presence arrives from the network thread
print("\n3. Publishing presence from a feed thread...")
worker = threading.Thread(
    target=feed.publish_presence,
    args=(
        "example-user",
        {
            "activities": [
                {
                    "kind": "listening",
                    "name": "Spotify",
                    "track_title": "Clair de Lune",
                    "artists": ["Claude Debussy"],
                }
            ]
        },
    ),
)
worker.start()
worker.join()
print(f"   ✓ Engine state: {title.engine.state.value}")

# 4. Host frames drive rendering
print("\n4. Running 35 seconds of host frames...")
run_frames(35)
for text in dispatched:
    print(f"   ✓ Title: {text}")

# 5. Nothing to show any more
print("\n5. Clearing presence...")
feed.publish_presence("example-user", {"activities": []})
run_frames(1)
print(f"   ✓ Current title: {sink.current_title()}")

# 6. Disable
print("\n6. Disabling module...")
title.set_enabled(False)
print(f"   ✓ Feed {title.current_connection_state().value}, clears sent: {sink.clear_count()}")

print("\n" + "=" * 60)
print("Example complete!")
print("=" * 60)
