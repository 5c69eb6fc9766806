"""
Default title rules - seed data for a fresh configuration.

Bump DEFAULT_VERSION whenever a preset changes so users can tell the
regenerated defaults apart from the ones already in their rule set.
"""

from typing import List

from .models import ActivityKind, TitleDataConfig, TitleRule

DEFAULT_VERSION = 2

# Activities the host itself reports, which would only echo back
HOST_GAME_NAMES = (
    "FINAL FANTASY XIV Online",
    "FINAL FANTASY XIV",
    "Custom Status",
)


def game_rule(
    *,
    excluded_names: tuple = HOST_GAME_NAMES,
    priority: int = 0,
    enabled: bool = True,
) -> TitleRule:
    """
    Create a rule showing the game being played.

    Alternates every 10 seconds between "Playing Game" and the game's name.

    Args:
        excluded_names: Activity names the rule should ignore
        priority: Rule priority
        enabled: Whether rule is active

    Returns:
        Configured TitleRule
    """
    filter_template = "{{ Activity.name not in %r }}" % (tuple(excluded_names),)
    title_template = (
        "{%- if (Context.seconds_elapsed % 20) < 10 -%}\n"
        "    Playing Game\n"
        "{%- else -%}\n"
        "    {{ Activity.name | truncate(32) }}\n"
        "{%- endif -%}"
    )
    return TitleRule(
        name=f"Game (V{DEFAULT_VERSION})",
        enabled=enabled,
        priority=priority,
        activity_kind=ActivityKind.GAME,
        filter_template=filter_template,
        title_template=title_template,
        title_data=TitleDataConfig(),
    )


def spotify_rule(*, priority: int = 1, enabled: bool = True) -> TitleRule:
    """
    Create a rule showing the music being listened to.

    Cycles every 10 seconds through "Listening to Spotify", the track title
    and the first artist, wrapped in note symbols.

    Args:
        priority: Rule priority (default outranks the game rule)
        enabled: Whether rule is active

    Returns:
        Configured TitleRule
    """
    title_template = (
        "♪\n"
        "{%- if (Context.seconds_elapsed % 30) < 10 -%}\n"
        "    Listening to Spotify\n"
        "{%- elif (Context.seconds_elapsed % 30) < 20 -%}\n"
        "    {{ Activity.track_title | default('', true) | truncate(30) }}\n"
        "{%- else -%}\n"
        "    {{ Activity.artists | first | default('') | truncate(30) }}\n"
        "{%- endif -%}\n"
        "♪"
    )
    return TitleRule(
        name=f"Spotify (V{DEFAULT_VERSION})",
        enabled=enabled,
        priority=priority,
        activity_kind=ActivityKind.LISTENING,
        title_template=title_template,
        title_data=TitleDataConfig(),
    )


def default_rules() -> List[TitleRule]:
    """Fresh copies of the default rules (new ids each call)."""
    return [game_rule(), spotify_rule()]
