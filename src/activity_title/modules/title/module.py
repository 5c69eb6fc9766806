"""
TitleModule implementation.

Turns presence updates into titles shown by the host application.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from activity_title.core.bus import Event, EventBus, EventFilter
from activity_title.core.dispatcher import FrameworkDispatcher
from activity_title.core.feed import PRESENCE_UPDATED, ConnectionState
from activity_title.modules.base import HostModule

from .engine import TickResult, TitleUpdateEngine, Transition
from .evaluators import TemplateEvaluator
from .models import MAX_TITLE_LENGTH, PresenceSnapshot, TitleConfig, TitleRule
from .presets import default_rules

if TYPE_CHECKING:
    from activity_title.core.feed import PresenceFeed
    from .adapter import TitleSinkAdapter

logger = logging.getLogger(__name__)

FRAMEWORK_UPDATE = "framework.update"


class TitleModule(HostModule):
    """
    Module that keeps the host's title in sync with presence.

    Events Consumed:
    - presence.updated: Presence snapshot from the feed (any thread)
    - framework.update: Host frame tick with ``delta_seconds`` (host thread)

    Events Emitted:
    - title.dispatched: A new title was sent to the sink
    - title.cleared: The title was cleared
    - title.warning: A one-shot warning was shown to the user
    """

    def __init__(
        self,
        sink: Optional["TitleSinkAdapter"] = None,
        feed: Optional["PresenceFeed"] = None,
        config: Optional[TitleConfig] = None,
        dispatcher: Optional[FrameworkDispatcher] = None,
        max_title_length: int = MAX_TITLE_LENGTH,
    ) -> None:
        """
        Initialize the title module.

        Args:
            sink: Title sink adapter. Required for titles to be shown. Can
                  be set later via set_sink().
            feed: Presence feed whose connection is started/stopped
            config: Initial configuration (default: default rules)
            dispatcher: Dispatcher bound to the host's designated thread
            max_title_length: Maximum title length the sink accepts
        """
        self._bus: Optional[EventBus] = None
        self._sink: Optional["TitleSinkAdapter"] = sink
        self._feed: Optional["PresenceFeed"] = feed
        self._config = config or TitleConfig(rules=default_rules())
        self._dispatcher = dispatcher or FrameworkDispatcher()
        self._evaluator = TemplateEvaluator()
        self._max_title_length = max_title_length
        self._engine: Optional[TitleUpdateEngine] = None
        if sink:
            self._engine = self._build_engine(sink)

    @property
    def id(self) -> str:
        return "title"

    @property
    def CURRENT_CONFIG_VERSION(self) -> int:
        return 1

    @property
    def config(self) -> TitleConfig:
        return self._config

    @property
    def engine(self) -> Optional[TitleUpdateEngine]:
        return self._engine

    def set_sink(self, sink: "TitleSinkAdapter") -> None:
        """Set the title sink adapter, clearing any title the previous one shows."""
        if self._engine:
            self._engine.clear()
        self._sink = sink
        self._engine = self._build_engine(sink)

    def _build_engine(self, sink: "TitleSinkAdapter") -> TitleUpdateEngine:
        return TitleUpdateEngine(
            self._config,
            sink,
            dispatcher=self._dispatcher,
            evaluator=self._evaluator,
            max_title_length=self._max_title_length,
        )

    def attach(self, bus: EventBus) -> None:
        """
        Attach the title module to the Event Bus.

        Subscribes to presence and frame events, and starts the feed if the
        module is enabled.
        """
        logger.info("Attaching TitleModule")
        self._bus = bus

        if self._feed:
            self._feed.set_bus(bus)

        bus.subscribe(
            self._on_presence_updated,
            EventFilter(event_type=PRESENCE_UPDATED),
        )
        bus.subscribe(
            self._on_framework_update,
            EventFilter(event_type=FRAMEWORK_UPDATE),
        )

        if not self._sink:
            logger.warning(
                "TitleModule attached without sink adapter. "
                "Titles will not be shown until set_sink() is called."
            )

        if self._config.enabled:
            self.start()

        logger.info("TitleModule ready")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Connect the presence feed unless it is already connected."""
        if self._feed and self._feed.state != ConnectionState.CONNECTED:
            logger.info("Starting presence feed")
            self._feed.connect()

    def stop(self) -> None:
        """Disconnect the presence feed and clear the title."""
        if self._feed:
            logger.info("Stopping presence feed")
            self._feed.disconnect()
        if self._engine:
            self._engine.clear()
            self._emit("title.cleared", {"reason": "stopped"})

    def restart(self) -> None:
        """Reconnect the presence feed."""
        self.stop()
        self.start()

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable the module.

        Clears the title before returning, then connects or disconnects the
        feed.
        """
        if self._engine:
            self._engine.set_enabled(enabled)
            self._emit("title.cleared", {"reason": "enabled" if enabled else "disabled"})
        else:
            self._config.enabled = enabled

        if enabled:
            self.start()
        elif self._feed:
            self._feed.disconnect()

    def toggle(self, value: bool) -> None:
        self.set_enabled(value)

    def current_connection_state(self) -> ConnectionState:
        """Connection state of the presence feed, for display."""
        if not self._feed:
            return ConnectionState.DISCONNECTED
        return self._feed.state

    # =========================================================================
    # Inputs
    # =========================================================================

    def on_presence_snapshot(self, account_id: str, snapshot: PresenceSnapshot) -> Transition:
        """Feed a presence snapshot to the engine."""
        if not self._engine:
            logger.debug("No engine, skipping presence")
            return Transition.IGNORED

        transition = self._engine.on_presence_snapshot(account_id, snapshot)
        if transition == Transition.CLEARED:
            self._emit("title.cleared", {"reason": "no_match"}, account_id=account_id)
        return transition

    def on_tick(self, delta_seconds: float) -> TickResult:
        """Advance the engine by one host frame."""
        if not self._engine:
            return TickResult()

        result = self._engine.on_tick(delta_seconds)
        if result.dispatched:
            self._emit("title.dispatched", {"title": result.title, "payload": result.payload})
        elif result.cleared:
            self._emit("title.cleared", {"reason": "rule_unavailable"})
        if result.warning:
            self._emit("title.warning", {"message": result.warning})
        return result

    def _on_presence_updated(self, event: Event) -> None:
        snapshot = event.payload.get("snapshot")
        if isinstance(snapshot, dict):
            snapshot = PresenceSnapshot.from_dict(snapshot)
        if snapshot is None:
            logger.warning(f"presence.updated from {event.source} without snapshot")
            return
        self.on_presence_snapshot(event.account_id or "", snapshot)

    def _on_framework_update(self, event: Event) -> None:
        self.on_tick(float(event.payload.get("delta_seconds", 0.0)))

    def _emit(self, event_type: str, payload: Dict[str, Any], account_id: Optional[str] = None) -> None:
        """Emit an observability event."""
        if not self._bus:
            return

        self._bus.publish(
            Event(
                type=event_type,
                source="title",
                account_id=account_id,
                payload=payload,
            )
        )

    # =========================================================================
    # Rule Editing Helpers
    # =========================================================================

    def validate_rule(self, rule: TitleRule) -> Dict[str, List[str]]:
        """
        Check a rule's templates for syntax errors.

        Returns:
            Error messages keyed by template field (only fields with errors)
        """
        errors: Dict[str, List[str]] = {}
        for field_name in ("filter_template", "title_template"):
            messages = self._evaluator.validate(getattr(rule, field_name))
            if messages:
                errors[field_name] = messages
        return errors

    def add_default_rules(self) -> List[TitleRule]:
        """Append fresh copies of the default rules to the live rule set."""
        rules = default_rules()
        self._config.rules.extend(rules)
        logger.info(f"Added {len(rules)} default rules")
        return rules

    # =========================================================================
    # HostModule Interface
    # =========================================================================

    def default_config(self) -> Dict:
        """Get default title configuration."""
        config = TitleConfig(version=self.CURRENT_CONFIG_VERSION, rules=default_rules())
        return config.to_dict()

    def config_schema(self) -> Dict:
        """
        Get configuration schema for the title module.

        Returns a JSON-schema-like structure for UI rendering.
        """
        color = {"type": ["array", "null"], "items": {"type": "number"}, "minItems": 3, "maxItems": 3}
        return {
            "type": "object",
            "properties": {
                "version": {
                    "type": "integer",
                    "title": "Config Version",
                    "readOnly": True,
                },
                "enabled": {
                    "type": "boolean",
                    "title": "Enabled",
                    "default": True,
                },
                "username": {
                    "type": "string",
                    "title": "Username",
                    "description": "Only react to presence of this account (empty = any account)",
                    "default": "",
                },
                "is_supporter": {
                    "type": "boolean",
                    "title": "Supporter",
                    "description": "Unlocks gradient colour sets and animation styles",
                    "default": False,
                },
                "rules": {
                    "type": "array",
                    "title": "Title Rules",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {"type": "string", "title": "Rule ID"},
                            "name": {"type": "string", "title": "Name"},
                            "enabled": {"type": "boolean", "title": "Enabled", "default": True},
                            "priority": {"type": "integer", "title": "Priority", "default": 0},
                            "activity_kind": {
                                "type": ["string", "null"],
                                "title": "Activity Type",
                                "enum": [
                                    None,
                                    "game",
                                    "rich_presence",
                                    "listening",
                                    "streaming",
                                    "custom_status",
                                ],
                            },
                            "filter_template": {
                                "type": "string",
                                "title": "Filter Template",
                                "description": "Must render true or false if provided",
                            },
                            "title_template": {
                                "type": "string",
                                "title": "Title Template",
                                "description": (
                                    f"Single line, at most {self._max_title_length} characters"
                                ),
                            },
                            "title_data": {
                                "type": ["object", "null"],
                                "properties": {
                                    "is_prefix": {"type": "boolean", "title": "Prefix"},
                                    "color": {**color, "title": "Color"},
                                    "glow": {**color, "title": "Glow"},
                                    "gradient_colour_set": {
                                        "type": ["string", "null"],
                                        "title": "Gradient Color Set",
                                    },
                                    "gradient_animation_style": {
                                        "type": ["string", "null"],
                                        "title": "Gradient Animation Style",
                                    },
                                },
                            },
                        },
                    },
                },
            },
            "required": ["version", "enabled"],
        }

    def migrate_config(self, config: Dict) -> Dict:
        """
        Migrate configuration from older versions.

        Version 0 kept prefix/color/glow directly on each rule; version 1
        moves them into ``title_data``.
        """
        version = config.get("version", 0)
        if version == self.CURRENT_CONFIG_VERSION:
            return config

        if version < 1:
            for rule in config.get("rules", []):
                rule["title_data"] = {
                    "is_prefix": rule.pop("is_prefix", False),
                    "color": rule.pop("color", None),
                    "glow": rule.pop("glow", None),
                }

        config["version"] = self.CURRENT_CONFIG_VERSION
        logger.info(f"Migrated title config from version {version}")
        return config

    def on_config_changed(self, config: Dict) -> None:
        """Swap in a new configuration."""
        new_config = TitleConfig.from_dict(self.migrate_config(dict(config)))
        was_enabled = self._config.enabled
        self._config = new_config

        if not self._engine:
            return

        self._engine.set_config(new_config)
        if new_config.enabled != was_enabled:
            self.set_enabled(new_config.enabled)
