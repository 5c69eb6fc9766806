"""
Title update engine - the presence-to-title state machine.

Handles rule transitions on presence snapshots, throttled re-rendering on
host ticks, and deduplicated dispatch to the title sink.
"""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

from activity_title.core.dispatcher import FrameworkDispatcher

from .errors import FeedMismatchError, OutputTooLongError, TemplateEvaluationError
from .evaluators import TemplateEvaluator
from .matcher import RuleMatcher
from .models import (
    MAX_TITLE_LENGTH,
    Activity,
    EvaluationContext,
    PresenceSnapshot,
    TitleConfig,
    TitleRule,
)
from .renderer import TitleRenderer

if TYPE_CHECKING:
    from .adapter import TitleSinkAdapter

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """State of the update scheduler."""

    IDLE = "idle"  # No rule bound, nothing displayed by us
    ACTIVE = "active"  # A rule is bound and re-rendered on ticks


class Transition(Enum):
    """What a presence snapshot did to the engine."""

    IGNORED = "ignored"  # Wrong account, or engine disabled
    UNCHANGED = "unchanged"  # Idle and still nothing matches
    ACTIVATED = "activated"  # New rule bound (from idle or another rule)
    REFRESHED = "refreshed"  # Same rule matched again, activity updated
    CLEARED = "cleared"  # Nothing matches any more


@dataclass(frozen=True)
class ActiveRule:
    """The rule currently bound to the scheduler.

    Holds the rule id rather than the rule itself so every tick re-reads the
    live rule set.
    """

    rule_id: str
    activity: Activity
    generation: int


@dataclass
class TickResult:
    """Result of one host tick."""

    rendered: bool = False
    dispatched: bool = False
    cleared: bool = False
    title: Optional[str] = None
    payload: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None  # Set only when the one-shot warning fired


class TitleUpdateEngine:
    """
    Core engine for turning presence snapshots into titles.

    Responsibilities:
    - Match snapshots to rules and track the active rule
    - Own the evaluation context (elapsed time since activation)
    - Throttle rendering to once per ``throttle_seconds``
    - Suppress dispatches whose payload didn't change
    - Marshal sink commands onto the designated thread

    Threading:
        ``on_presence_snapshot`` may be called from any thread; ``on_tick``
        is called from the designated thread. All mutable state is guarded
        by one lock, and templates are evaluated outside it.
    """

    THROTTLE_SECONDS = 0.1

    def __init__(
        self,
        config: TitleConfig,
        sink: "TitleSinkAdapter",
        dispatcher: Optional[FrameworkDispatcher] = None,
        evaluator: Optional[TemplateEvaluator] = None,
        max_title_length: int = MAX_TITLE_LENGTH,
        throttle_seconds: float = THROTTLE_SECONDS,
    ) -> None:
        self._config = config
        self._sink = sink
        self._dispatcher = dispatcher or FrameworkDispatcher()
        self._evaluator = evaluator or TemplateEvaluator()
        self._matcher = RuleMatcher(self._evaluator)
        self._renderer = TitleRenderer(self._evaluator, max_title_length)
        self._throttle_seconds = throttle_seconds

        self._lock = threading.RLock()

        # Scheduler state
        self._active: Optional[ActiveRule] = None
        self._generation = 0
        # Time since the last render, across rule changes; None until the first
        self._since_render: Optional[float] = None

        # Evaluation context and dispatch state, reset together
        self._context = EvaluationContext()
        self._last_payload: Optional[str] = None
        self._warned = False

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def config(self) -> TitleConfig:
        return self._config

    def set_config(self, config: TitleConfig) -> None:
        """
        Replace the configuration.

        The active rule is kept if the new rule set still contains it; the
        next tick clears the title otherwise.
        """
        with self._lock:
            self._config = config
        logger.debug(f"Config replaced ({len(config.rules)} rules)")

    @property
    def evaluator(self) -> TemplateEvaluator:
        return self._evaluator

    @property
    def dispatcher(self) -> FrameworkDispatcher:
        return self._dispatcher

    # =========================================================================
    # State Inspection
    # =========================================================================

    @property
    def state(self) -> EngineState:
        with self._lock:
            return EngineState.ACTIVE if self._active else EngineState.IDLE

    @property
    def active_rule_id(self) -> Optional[str]:
        with self._lock:
            return self._active.rule_id if self._active else None

    @property
    def seconds_elapsed(self) -> float:
        with self._lock:
            return self._context.seconds_elapsed

    @property
    def last_payload(self) -> Optional[str]:
        with self._lock:
            return self._last_payload

    @property
    def warned(self) -> bool:
        with self._lock:
            return self._warned

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable the engine.

        Always returns to idle and issues a clear before returning, so a
        stale title never survives a toggle.
        """
        with self._lock:
            self._config.enabled = enabled
            self._reset()
            self._post_clear()
        logger.debug(f"Engine {'enabled' if enabled else 'disabled'}")

    def clear(self) -> None:
        """Drop the active rule and clear the title unconditionally."""
        with self._lock:
            self._reset()
            self._post_clear()

    # =========================================================================
    # Presence Processing
    # =========================================================================

    def on_presence_snapshot(self, account_id: str, snapshot: PresenceSnapshot) -> Transition:
        """
        Process a presence snapshot for an account.

        Args:
            account_id: Account the snapshot belongs to
            snapshot: The presence snapshot

        Returns:
            The transition the snapshot caused
        """
        expected = self._config.username
        if expected.strip() and account_id != expected:
            logger.debug(str(FeedMismatchError(account_id, expected)))
            return Transition.IGNORED

        with self._lock:
            if not self._config.enabled:
                return Transition.IGNORED
            context = self._context.copy()
            rules = self._config.rules

        # Filters are user templates; evaluate without holding the lock
        match = self._matcher.match(snapshot, rules, context)

        with self._lock:
            if not self._config.enabled:
                return Transition.IGNORED

            if match is None:
                if self._active is None:
                    return Transition.UNCHANGED
                logger.debug("No rule matches, clearing title")
                self._reset()
                self._post_clear()
                return Transition.CLEARED

            if self._active is not None and self._active.rule_id == match.rule.id:
                self._active = replace(self._active, activity=match.activity)
                return Transition.REFRESHED

            self._reset()
            self._active = ActiveRule(
                rule_id=match.rule.id,
                activity=match.activity,
                generation=self._generation,
            )
            logger.debug(f"Activated rule '{match.rule.name}'")
            return Transition.ACTIVATED

    # =========================================================================
    # Ticking
    # =========================================================================

    def on_tick(self, delta_seconds: float) -> TickResult:
        """
        Advance time and re-render the active rule if the throttle allows.

        Must be called from the designated thread.

        Args:
            delta_seconds: Wall-clock time since the previous tick

        Returns:
            What this tick did
        """
        self._dispatcher.pump()
        result = TickResult()

        with self._lock:
            if self._since_render is not None:
                self._since_render += delta_seconds
            if not self._config.enabled or self._active is None:
                return result

            self._context.seconds_elapsed += delta_seconds
            if self._since_render is not None and self._since_render < self._throttle_seconds:
                return result
            self._since_render = 0.0

            active = self._active
            rule = self._find_rule(active.rule_id)
            if rule is None or not rule.enabled or rule.title_data is None:
                logger.debug(f"Rule {active.rule_id} no longer applicable, clearing title")
                self._reset()
                self._post_clear()
                result.cleared = True
                return result

            context = self._context.copy()
            is_supporter = self._config.is_supporter

        try:
            rendered = self._renderer.render(rule, active.activity, context, is_supporter)
        except TemplateEvaluationError as e:
            logger.warning(f"Title template for rule '{rule.name}' failed: {e}")
            result.error = str(e)
            return result
        except OutputTooLongError as e:
            result.error = str(e)
            with self._lock:
                if active.generation != self._generation or self._warned:
                    return result
                self._warned = True
            logger.warning(str(e))
            self._sink.show_warning(str(e))
            result.warning = str(e)
            return result

        result.rendered = True
        result.title = rendered.text
        payload = rendered.serialize()

        with self._lock:
            if active.generation != self._generation or not self._config.enabled:
                logger.debug(f"Discarding stale render for rule '{rule.name}'")
                return result
            if payload == self._last_payload:
                return result
            self._last_payload = payload
            self._post_set(payload)

        result.dispatched = True
        result.payload = payload
        return result

    # =========================================================================
    # Internal
    # =========================================================================

    def _find_rule(self, rule_id: str) -> Optional[TitleRule]:
        for rule in self._config.rules:
            if rule.id == rule_id:
                return rule
        return None

    def _reset(self) -> None:
        """Return to idle and reset context and dispatch state. Lock held."""
        self._active = None
        self._generation += 1
        self._context.seconds_elapsed = 0.0
        self._last_payload = None
        self._warned = False

    def _post_set(self, payload: str) -> None:
        sink = self._sink

        def _set_title() -> None:
            logger.debug(f"Calling set_title with: {payload}")
            sink.set_title(payload)

        self._dispatcher.post(_set_title, "set_title")

    def _post_clear(self) -> None:
        sink = self._sink

        def _clear_title() -> None:
            logger.debug("Calling clear_title")
            sink.clear_title()

        self._dispatcher.post(_clear_title, "clear_title")
