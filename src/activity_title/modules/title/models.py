"""
Data models for the Title module.

Defines activity kinds, presence snapshots, title rules, and the payload
shape handed to the title sink.
"""

import json
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


# Maximum number of characters the sink accepts for a title
MAX_TITLE_LENGTH = 32

Color = Tuple[float, float, float]


# =============================================================================
# Enums
# =============================================================================


class ActivityKind(Enum):
    """Categories of presence activity a rule can bind to."""

    GAME = "game"  # Generic "playing X"
    RICH_PRESENCE = "rich_presence"  # Game with details/state/assets
    LISTENING = "listening"  # Music (e.g., Spotify)
    STREAMING = "streaming"  # Live stream with URL
    CUSTOM_STATUS = "custom_status"  # User-typed status line

    def is_assignable_to(self, other: "ActivityKind") -> bool:
        """Check if this kind satisfies a rule declared for ``other``.

        A kind satisfies itself and every kind above it in the subtype table.
        """
        kind: Optional[ActivityKind] = self
        while kind is not None:
            if kind is other:
                return True
            kind = _PARENT_KIND.get(kind)
        return False


# Every specific kind is-a GAME for matching purposes
_PARENT_KIND: Dict[ActivityKind, ActivityKind] = {
    ActivityKind.RICH_PRESENCE: ActivityKind.GAME,
    ActivityKind.LISTENING: ActivityKind.GAME,
    ActivityKind.STREAMING: ActivityKind.GAME,
    ActivityKind.CUSTOM_STATUS: ActivityKind.GAME,
}


class GradientColourSet(Enum):
    """Gradient colour sets offered by the sink (supporter feature)."""

    PRIDE_RAINBOW = 0
    TRANSGENDER = 1
    LESBIAN = 2
    BISEXUAL = 3
    BLACK_AND_WHITE = 4
    BLACK_AND_RED = 5
    BLACK_AND_BLUE = 6
    BLACK_AND_YELLOW = 7
    BLACK_AND_GREEN = 8
    BLACK_AND_PINK = 9
    CHERRY_BLOSSOM = 10
    GOLDEN = 11
    PASTEL_RAINBOW = 12
    NON_BINARY = 13

    @property
    def fancy_name(self) -> str:
        return self.name.replace("_AND_", " & ").replace("_", " ").title()


class GradientAnimationStyle(Enum):
    """Gradient animation styles offered by the sink (supporter feature)."""

    PULSE = 0
    WAVE = 1
    STATIC = 2


# =============================================================================
# Presence
# =============================================================================


@dataclass(frozen=True)
class Activity:
    """One typed entry within a presence snapshot.

    Fields beyond ``kind`` and ``name`` are only meaningful for some kinds
    and stay at their defaults otherwise. Templates see this object as
    ``Activity``.
    """

    kind: ActivityKind
    name: str = ""
    details: Optional[str] = None  # Rich presence first line
    state: Optional[str] = None  # Rich presence second line / custom status text
    track_title: Optional[str] = None  # Listening
    artists: Tuple[str, ...] = ()  # Listening
    album: Optional[str] = None  # Listening
    duration_seconds: Optional[float] = None  # Listening
    position_seconds: Optional[float] = None  # Listening
    url: Optional[str] = None  # Streaming
    emoji: Optional[str] = None  # Custom status
    application_id: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        """Build an activity from a feed-provided dict."""
        return cls(
            kind=ActivityKind(data["kind"]),
            name=data.get("name", ""),
            details=data.get("details"),
            state=data.get("state"),
            track_title=data.get("track_title"),
            artists=tuple(data.get("artists", ())),
            album=data.get("album"),
            duration_seconds=data.get("duration_seconds"),
            position_seconds=data.get("position_seconds"),
            url=data.get("url"),
            emoji=data.get("emoji"),
            application_id=data.get("application_id"),
            extra=dict(data.get("extra", {})),
        )


@dataclass(frozen=True)
class PresenceSnapshot:
    """Point-in-time description of what an account is doing."""

    activities: Tuple[Activity, ...] = ()
    status: Optional[str] = None  # e.g., "online", "idle", "dnd"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PresenceSnapshot":
        return cls(
            activities=tuple(Activity.from_dict(a) for a in data.get("activities", [])),
            status=data.get("status"),
        )


@dataclass
class EvaluationContext:
    """Running context exposed to templates as ``Context``."""

    seconds_elapsed: float = 0.0

    def copy(self) -> "EvaluationContext":
        return EvaluationContext(seconds_elapsed=self.seconds_elapsed)


def template_variables(kind: ActivityKind) -> List[str]:
    """
    List the template variables available for an activity kind.

    Args:
        kind: Activity kind selected on a rule

    Returns:
        Variable paths such as ``Activity.track_title`` and
        ``Context.seconds_elapsed``
    """
    names = [f"Activity.{name}" for name in ("kind", "name", "application_id", "extra")]
    names.extend(f"Activity.{name}" for name in _KIND_FIELDS.get(kind, ()))
    names.extend(f"Context.{f.name}" for f in fields(EvaluationContext))
    return names


_KIND_FIELDS: Dict[ActivityKind, Tuple[str, ...]] = {
    ActivityKind.GAME: (),
    ActivityKind.RICH_PRESENCE: ("details", "state"),
    ActivityKind.LISTENING: (
        "track_title",
        "artists",
        "album",
        "duration_seconds",
        "position_seconds",
    ),
    ActivityKind.STREAMING: ("details", "url"),
    ActivityKind.CUSTOM_STATUS: ("state", "emoji"),
}


# =============================================================================
# Title Payload
# =============================================================================


def _color_to_dict(color: Optional[Color]) -> Optional[Dict[str, float]]:
    if color is None:
        return None
    return {"X": float(color[0]), "Y": float(color[1]), "Z": float(color[2])}


def _color_from_value(value: Any) -> Optional[Color]:
    if value is None:
        return None
    if isinstance(value, dict):
        return (float(value["X"]), float(value["Y"]), float(value["Z"]))
    r, g, b = value
    return (float(r), float(g), float(b))


@dataclass(frozen=True)
class TitleData:
    """Payload sent to the title sink."""

    title: str
    is_prefix: bool = False
    color: Optional[Color] = None
    glow: Optional[Color] = None
    gradient_colour_set: Optional[GradientColourSet] = None
    gradient_animation_style: Optional[GradientAnimationStyle] = None

    def to_dict(self) -> Dict[str, Any]:
        """Project into the sink's field names, omitting unset fields."""
        result: Dict[str, Any] = {"Title": self.title, "IsPrefix": self.is_prefix}
        if self.color is not None:
            result["Color"] = _color_to_dict(self.color)
        if self.glow is not None:
            result["Glow"] = _color_to_dict(self.glow)
        if self.gradient_colour_set is not None:
            result["GradientColourSet"] = self.gradient_colour_set.value
        if self.gradient_animation_style is not None:
            result["GradientAnimationStyle"] = self.gradient_animation_style.value
        return result

    def serialize(self) -> str:
        """Canonical JSON; equal payloads always yield identical strings."""
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )


@dataclass
class TitleDataConfig:
    """Per-rule output options."""

    is_prefix: bool = False
    color: Optional[Color] = None
    glow: Optional[Color] = None
    gradient_colour_set: Optional[GradientColourSet] = None
    gradient_animation_style: Optional[GradientAnimationStyle] = None

    def to_title_data(self, title: str, is_supporter: bool) -> TitleData:
        """
        Build the sink payload for a rendered title.

        Gradient fields require the supporter feature. An active gradient
        replaces the static glow, and an animation style is only sent
        alongside a colour set.
        """
        gradient = self.gradient_colour_set if is_supporter else None
        return TitleData(
            title=title,
            is_prefix=self.is_prefix,
            color=self.color,
            glow=None if gradient is not None else self.glow,
            gradient_colour_set=gradient,
            gradient_animation_style=(
                self.gradient_animation_style if gradient is not None else None
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_prefix": self.is_prefix,
            "color": list(self.color) if self.color is not None else None,
            "glow": list(self.glow) if self.glow is not None else None,
            "gradient_colour_set": (
                self.gradient_colour_set.name if self.gradient_colour_set else None
            ),
            "gradient_animation_style": (
                self.gradient_animation_style.name if self.gradient_animation_style else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TitleDataConfig":
        colour_set = data.get("gradient_colour_set")
        animation = data.get("gradient_animation_style")
        return cls(
            is_prefix=data.get("is_prefix", False),
            color=_color_from_value(data.get("color")),
            glow=_color_from_value(data.get("glow")),
            gradient_colour_set=GradientColourSet[colour_set] if colour_set else None,
            gradient_animation_style=GradientAnimationStyle[animation] if animation else None,
        )


# =============================================================================
# Title Rule
# =============================================================================


def _new_rule_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TitleRule:
    """A user-defined mapping from a matched activity to a title.

    Consists of:
    - activity_kind: Which activities the rule may bind to (None never matches)
    - filter_template: Boolean template; blank means always true
    - title_template: Template rendering the title; blank renders ""
    - title_data: Output options; None clears the title instead
    """

    name: str = ""
    enabled: bool = True
    priority: int = 0
    activity_kind: Optional[ActivityKind] = None
    filter_template: str = ""
    title_template: str = ""
    title_data: Optional[TitleDataConfig] = field(default_factory=TitleDataConfig)
    id: str = field(default_factory=_new_rule_id)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for storage/transport."""
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "priority": self.priority,
            "activity_kind": self.activity_kind.value if self.activity_kind else None,
            "filter_template": self.filter_template,
            "title_template": self.title_template,
            "title_data": self.title_data.to_dict() if self.title_data else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TitleRule":
        """Deserialize from dict."""
        kind = data.get("activity_kind")
        title_data = data.get("title_data", {})
        return cls(
            id=data.get("id") or _new_rule_id(),
            name=data.get("name", ""),
            enabled=data.get("enabled", True),
            priority=int(data.get("priority", 0)),
            activity_kind=ActivityKind(kind) if kind else None,
            filter_template=data.get("filter_template", ""),
            title_template=data.get("title_template", ""),
            title_data=TitleDataConfig.from_dict(title_data) if title_data is not None else None,
        )


# =============================================================================
# Module Config
# =============================================================================


@dataclass
class TitleConfig:
    """Configuration for the title module.

    ``rules`` is the live rule set; editors mutate it in place and the
    engine reads it on every evaluation.
    """

    version: int = 1
    enabled: bool = True
    username: str = ""  # Account filter; empty accepts every account
    is_supporter: bool = False  # Grants gradient fields
    rules: List[TitleRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "version": self.version,
            "enabled": self.enabled,
            "username": self.username,
            "is_supporter": self.is_supporter,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TitleConfig":
        """Deserialize from dict."""
        return cls(
            version=data.get("version", 1),
            enabled=data.get("enabled", True),
            username=data.get("username", ""),
            is_supporter=data.get("is_supporter", False),
            rules=[TitleRule.from_dict(r) for r in data.get("rules", [])],
        )
