"""
Title module for activity-title.

Maps presence activities to a short title shown by the host application.

Features:
- Prioritized rules with optional filter templates
- Jinja2 title templates with a time-based evaluation context
- Throttled re-rendering with duplicate suppression
- Supporter-gated gradient colour sets and animation styles
- Sink calls marshalled onto the host's designated thread

Architecture:
    presence.updated ──► RuleMatcher ──► TitleUpdateEngine ◄── framework.update
                                               │
                                               ▼
                                        TitleRenderer
                                               │
                                               ▼
                                   FrameworkDispatcher ──► TitleSinkAdapter
"""

from .module import TitleModule
from .models import (
    # Constants
    MAX_TITLE_LENGTH,
    # Enums
    ActivityKind,
    GradientColourSet,
    GradientAnimationStyle,
    # Presence
    Activity,
    PresenceSnapshot,
    EvaluationContext,
    template_variables,
    # Title
    TitleData,
    TitleDataConfig,
    TitleRule,
    TitleConfig,
)
from .errors import (
    TitleError,
    FilterEvaluationError,
    TemplateEvaluationError,
    OutputTooLongError,
    FeedMismatchError,
)
from .adapter import TitleSinkAdapter, MockTitleSinkAdapter
from .engine import TitleUpdateEngine, EngineState, Transition, TickResult
from .evaluators import TemplateEvaluator, parse_bool
from .matcher import RuleMatcher, RuleMatch
from .renderer import TitleRenderer, RenderedTitle
from .presets import default_rules, game_rule, spotify_rule

__all__ = [
    # Main module
    "TitleModule",
    # Engine
    "TitleUpdateEngine",
    "EngineState",
    "Transition",
    "TickResult",
    # Adapter
    "TitleSinkAdapter",
    "MockTitleSinkAdapter",
    # Evaluation
    "TemplateEvaluator",
    "parse_bool",
    "RuleMatcher",
    "RuleMatch",
    "TitleRenderer",
    "RenderedTitle",
    # Errors
    "TitleError",
    "FilterEvaluationError",
    "TemplateEvaluationError",
    "OutputTooLongError",
    "FeedMismatchError",
    # Models
    "MAX_TITLE_LENGTH",
    "ActivityKind",
    "GradientColourSet",
    "GradientAnimationStyle",
    "Activity",
    "PresenceSnapshot",
    "EvaluationContext",
    "template_variables",
    "TitleData",
    "TitleDataConfig",
    "TitleRule",
    "TitleConfig",
    # Presets
    "default_rules",
    "game_rule",
    "spotify_rule",
]
