"""Tests for the title update engine."""

import json
import threading

import pytest

from activity_title.core.dispatcher import FrameworkDispatcher
from activity_title.modules.title import (
    Activity,
    ActivityKind,
    EngineState,
    GradientAnimationStyle,
    GradientColourSet,
    MockTitleSinkAdapter,
    PresenceSnapshot,
    TemplateEvaluator,
    TitleConfig,
    TitleDataConfig,
    TitleRule,
    TitleUpdateEngine,
    Transition,
)


TETRIS = Activity(kind=ActivityKind.GAME, name="Tetris")
CHESS = Activity(kind=ActivityKind.GAME, name="Chess")
MUSIC = Activity(kind=ActivityKind.LISTENING, name="Spotify", track_title="Song")


def snapshot(*activities: Activity) -> PresenceSnapshot:
    """Helper to build a snapshot."""
    return PresenceSnapshot(activities=tuple(activities))


def titles(sink: MockTitleSinkAdapter):
    """Titles of every set_title call, in order."""
    return [json.loads(payload)["Title"] for payload in sink.get_set_calls()]


def run_in_thread(fn):
    """Run fn on a fresh thread and wait for it."""
    thread = threading.Thread(target=fn)
    thread.start()
    thread.join(timeout=5)
    assert not thread.is_alive()


@pytest.fixture
def game_rule():
    """Game rule showing the game's name."""
    return TitleRule(
        name="game",
        priority=0,
        activity_kind=ActivityKind.GAME,
        title_template="{{ Activity.name }}",
    )


@pytest.fixture
def music_rule():
    """Higher-priority listening rule with a static title."""
    return TitleRule(
        name="music",
        priority=1,
        activity_kind=ActivityKind.LISTENING,
        title_template="Music",
    )


@pytest.fixture
def config(game_rule, music_rule):
    return TitleConfig(rules=[game_rule, music_rule])


@pytest.fixture
def sink():
    """Create a mock title sink."""
    return MockTitleSinkAdapter()


@pytest.fixture
def engine(config, sink):
    """Create an engine bound to the test thread."""
    return TitleUpdateEngine(config, sink, dispatcher=FrameworkDispatcher())


class TestTransitions:
    """Tests for presence-driven state transitions."""

    def test_starts_idle(self, engine):
        """Test a new engine is idle."""
        assert engine.state == EngineState.IDLE
        assert engine.active_rule_id is None

    def test_activate(self, engine, game_rule):
        """Test a matching snapshot activates the rule."""
        assert engine.on_presence_snapshot("alice", snapshot(TETRIS)) == Transition.ACTIVATED
        assert engine.state == EngineState.ACTIVE
        assert engine.active_rule_id == game_rule.id

    def test_no_match_while_idle(self, engine, sink):
        """Test idle stays idle without touching the sink."""
        assert engine.on_presence_snapshot("alice", snapshot()) == Transition.UNCHANGED
        assert sink.get_calls() == []

    def test_no_match_clears(self, engine, sink):
        """Test losing the match clears the title and goes idle."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        assert engine.on_presence_snapshot("alice", snapshot()) == Transition.CLEARED
        assert engine.state == EngineState.IDLE
        assert sink.clear_count() == 1
        assert sink.current_title() is None

    def test_same_rule_refreshes_activity(self, engine, sink):
        """Test the same rule re-matching keeps time and updates the activity."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.5)

        assert engine.on_presence_snapshot("alice", snapshot(CHESS)) == Transition.REFRESHED
        assert engine.seconds_elapsed == pytest.approx(0.5)

        engine.on_tick(0.5)

        assert titles(sink) == ["Tetris", "Chess"]
        assert engine.seconds_elapsed == pytest.approx(1.0)

    def test_switching_rules_resets(self, engine, sink, music_rule):
        """Test a different rule resets elapsed time."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(2.0)

        assert engine.on_presence_snapshot("alice", snapshot(MUSIC)) == Transition.ACTIVATED
        assert engine.active_rule_id == music_rule.id
        assert engine.seconds_elapsed == 0.0

        engine.on_tick(0.1)
        assert titles(sink) == ["Tetris", "Music"]

    def test_switching_rules_redispatches_same_payload(self, engine, sink, config, music_rule):
        """Test a new rule sends its title even if identical to the last one."""
        same = TitleRule(
            name="same",
            priority=2,
            activity_kind=ActivityKind.STREAMING,
            title_template="Music",
        )
        config.rules.append(same)

        engine.on_presence_snapshot("alice", snapshot(MUSIC))
        engine.on_tick(0.1)
        engine.on_presence_snapshot(
            "alice", snapshot(Activity(kind=ActivityKind.STREAMING, name="Twitch"))
        )
        engine.on_tick(0.1)

        assert titles(sink) == ["Music", "Music"]

    def test_priority_decides_between_activities(self, engine, music_rule):
        """Test the higher-priority rule wins when both could match."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS, MUSIC))
        assert engine.active_rule_id == music_rule.id

    def test_username_mismatch_ignored(self, engine, config, sink):
        """Test snapshots from other accounts are ignored."""
        config.username = "alice"

        assert engine.on_presence_snapshot("bob", snapshot(TETRIS)) == Transition.IGNORED
        assert engine.state == EngineState.IDLE

        assert engine.on_presence_snapshot("alice", snapshot(TETRIS)) == Transition.ACTIVATED

    def test_blank_username_accepts_any_account(self, engine, config):
        """Test a whitespace-only username doesn't filter accounts."""
        config.username = "   "

        assert engine.on_presence_snapshot("bob", snapshot(TETRIS)) == Transition.ACTIVATED

    def test_no_match_after_clear_unchanged(self, engine, sink):
        """Test an idle engine doesn't clear again when nothing matches."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)
        engine.clear()

        assert engine.on_presence_snapshot("alice", snapshot()) == Transition.UNCHANGED
        assert sink.clear_count() == 1


class TestTicking:
    """Tests for throttled rendering and dispatch."""

    def test_first_tick_renders_immediately(self, engine, sink):
        """Test the first tick after activation renders without waiting."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        result = engine.on_tick(0.001)

        assert result.rendered
        assert result.dispatched
        assert result.title == "Tetris"
        assert sink.current_title() == {"Title": "Tetris", "IsPrefix": False}

    def test_throttled(self, engine, config, sink, game_rule):
        """Test renders happen at most once per throttle interval."""
        game_rule.title_template = "{{ Context.seconds_elapsed }}"
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        rendered = [engine.on_tick(0.04).rendered for _ in range(4)]

        assert rendered == [True, False, False, True]
        assert len(sink.get_set_calls()) == 2

    def test_rule_flips_respect_throttle(self, engine, sink):
        """Test alternating rules can't render faster than the throttle."""
        rendered = 0
        for i in range(10):
            engine.on_presence_snapshot("alice", snapshot(MUSIC if i % 2 else TETRIS))
            rendered += engine.on_tick(0.01).rendered

        assert rendered == 1

        engine.on_presence_snapshot("alice", snapshot(MUSIC))
        assert engine.on_tick(0.05).rendered

    def test_throttle_spans_activation(self, engine, sink):
        """Test a new activation waits out the throttle of the previous render."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        assert engine.on_tick(0.1).rendered

        engine.on_presence_snapshot("alice", snapshot(MUSIC))

        assert not engine.on_tick(0.04).rendered
        assert engine.on_tick(0.08).rendered
        assert titles(sink) == ["Tetris", "Music"]

    def test_render_immediate_after_idle(self, engine, sink):
        """Test the first render after an idle period doesn't wait."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)
        engine.on_presence_snapshot("alice", snapshot())

        engine.on_tick(1.0)
        engine.on_presence_snapshot("alice", snapshot(CHESS))

        assert engine.on_tick(0.001).rendered
        assert titles(sink) == ["Tetris", "Chess"]

    def test_duplicate_payload_suppressed(self, engine, sink):
        """Test an unchanged title is not sent again."""
        engine.on_presence_snapshot("alice", snapshot(MUSIC))

        first = engine.on_tick(0.1)
        second = engine.on_tick(0.1)
        third = engine.on_tick(0.1)

        assert first.dispatched
        assert second.rendered and not second.dispatched
        assert third.rendered and not third.dispatched
        assert len(sink.get_set_calls()) == 1

    def test_title_changes_over_time(self, engine, sink, game_rule):
        """Test time-based templates dispatch when their output changes."""
        game_rule.title_template = "{{ 'Playing' if Context.seconds_elapsed < 1 else Activity.name }}"
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        for _ in range(10):
            engine.on_tick(0.2)

        assert titles(sink) == ["Playing", "Tetris"]

    def test_idle_ticks_do_nothing(self, engine, sink):
        """Test ticking while idle neither renders nor advances time."""
        result = engine.on_tick(5.0)

        assert not result.rendered
        assert engine.seconds_elapsed == 0.0
        assert sink.get_calls() == []

    def test_empty_title_dispatched(self, engine, sink, game_rule):
        """Test an empty title template still dispatches an empty title."""
        game_rule.title_template = ""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        result = engine.on_tick(0.1)

        assert result.dispatched
        assert titles(sink) == [""]

    def test_supporter_gradient(self, engine, config, sink, game_rule):
        """Test gradient fields follow the supporter flag."""
        game_rule.title_data = TitleDataConfig(
            glow=(1, 1, 1),
            gradient_colour_set=GradientColourSet.PASTEL_RAINBOW,
            gradient_animation_style=GradientAnimationStyle.STATIC,
        )
        config.is_supporter = True
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        engine.on_tick(0.1)

        current = sink.current_title()
        assert current["GradientColourSet"] == GradientColourSet.PASTEL_RAINBOW.value
        assert current["GradientAnimationStyle"] == GradientAnimationStyle.STATIC.value
        assert "Glow" not in current


class TestFailures:
    """Tests for render failures."""

    def test_template_error_skips_update(self, engine, sink, game_rule):
        """Test a failing template leaves the title alone and stays active."""
        game_rule.title_template = "{{ 1 / 0 }}"
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        result = engine.on_tick(0.1)

        assert result.error
        assert not result.dispatched
        assert sink.get_calls() == []
        assert engine.state == EngineState.ACTIVE

    def test_too_long_warns_once(self, engine, sink, game_rule):
        """Test an over-long title warns once per activation."""
        game_rule.title_template = "x" * 40
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        first = engine.on_tick(0.1)
        second = engine.on_tick(0.1)
        third = engine.on_tick(0.1)

        assert first.warning
        assert second.error and not second.warning
        assert third.error and not third.warning
        assert len(sink.get_warnings()) == 1
        assert sink.get_set_calls() == []
        assert engine.warned

    def test_warning_rearms_on_new_activation(self, engine, sink, game_rule):
        """Test the warning fires again after the rule is re-activated."""
        game_rule.title_template = "x" * 40
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        engine.on_presence_snapshot("alice", snapshot())
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        assert len(sink.get_warnings()) == 2

    def test_warning_not_rearmed_by_refresh(self, engine, sink, game_rule):
        """Test re-matching the same rule doesn't re-arm the warning."""
        game_rule.title_template = "x" * 40
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        engine.on_presence_snapshot("alice", snapshot(CHESS))
        engine.on_tick(0.1)

        assert len(sink.get_warnings()) == 1


class TestLiveRules:
    """Tests for rule edits while a rule is active."""

    def test_template_edit_applies(self, engine, sink, game_rule):
        """Test edits to the active rule apply on the next render."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        game_rule.title_template = "Edited"
        engine.on_tick(0.1)

        assert titles(sink) == ["Tetris", "Edited"]

    def test_removed_rule_clears(self, engine, config, sink, game_rule):
        """Test removing the active rule clears the title."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        config.rules.remove(game_rule)
        result = engine.on_tick(0.1)

        assert result.cleared
        assert engine.state == EngineState.IDLE
        assert sink.clear_count() == 1

    def test_disabled_rule_clears(self, engine, sink, game_rule):
        """Test disabling the active rule clears the title."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        game_rule.enabled = False
        assert engine.on_tick(0.1).cleared
        assert sink.clear_count() == 1

    def test_missing_output_options_clear(self, engine, sink, game_rule):
        """Test a rule without output options clears instead of rendering."""
        game_rule.title_data = None
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        result = engine.on_tick(0.1)

        assert result.cleared
        assert sink.get_set_calls() == []
        assert sink.clear_count() == 1

    def test_set_config_replaces_rules(self, engine, sink):
        """Test replacing the config drops a rule it no longer contains."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.set_config(TitleConfig(rules=[]))

        assert engine.on_tick(0.1).cleared


class TestEnableDisable:
    """Tests for enabling and disabling the engine."""

    def test_disable_clears_once(self, engine, config, sink):
        """Test disabling clears the title exactly once and goes idle."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        engine.set_enabled(False)

        assert config.enabled is False
        assert engine.state == EngineState.IDLE
        assert sink.clear_count() == 1

    def test_disabled_ignores_presence(self, engine, sink):
        """Test a disabled engine ignores snapshots."""
        engine.set_enabled(False)

        assert engine.on_presence_snapshot("alice", snapshot(TETRIS)) == Transition.IGNORED
        assert engine.state == EngineState.IDLE

    def test_enable_clears(self, engine, sink):
        """Test enabling also issues a clear."""
        engine.set_enabled(False)
        engine.set_enabled(True)

        assert sink.clear_count() == 2
        assert engine.on_presence_snapshot("alice", snapshot(TETRIS)) == Transition.ACTIVATED

    def test_clear(self, engine, sink):
        """Test clear() goes idle and clears unconditionally."""
        engine.clear()

        assert engine.state == EngineState.IDLE
        assert sink.clear_count() == 1


class TestThreading:
    """Tests for presence arriving off the designated thread."""

    def test_off_thread_activation(self, engine, sink):
        """Test snapshots from another thread are rendered on the next tick."""
        results = []
        run_in_thread(lambda: results.append(engine.on_presence_snapshot("alice", snapshot(TETRIS))))

        assert results == [Transition.ACTIVATED]

        engine.on_tick(0.1)
        assert titles(sink) == ["Tetris"]

    def test_off_thread_clear_delivered_on_tick(self, engine, sink):
        """Test a clear posted from another thread waits for the next tick."""
        engine.on_presence_snapshot("alice", snapshot(TETRIS))
        engine.on_tick(0.1)

        run_in_thread(lambda: engine.on_presence_snapshot("alice", snapshot()))

        assert sink.clear_count() == 0
        assert engine.dispatcher.has_pending

        engine.on_tick(0.1)

        assert sink.clear_count() == 1
        assert sink.get_calls()[-1] == ("clear_title", None)

    def test_stale_render_discarded(self, config, sink, game_rule):
        """Test a render finishing after the rule was replaced is dropped."""

        class InterruptingEvaluator(TemplateEvaluator):
            def __init__(self):
                super().__init__()
                self.on_render = None

            def evaluate(self, template, bindings):
                if self.on_render and template == game_rule.title_template:
                    hook, self.on_render = self.on_render, None
                    hook()
                return super().evaluate(template, bindings)

        evaluator = InterruptingEvaluator()
        engine = TitleUpdateEngine(config, sink, evaluator=evaluator)
        engine.on_presence_snapshot("alice", snapshot(TETRIS))

        evaluator.on_render = lambda: engine.on_presence_snapshot("alice", snapshot())
        result = engine.on_tick(0.1)

        assert result.rendered
        assert not result.dispatched
        assert sink.get_set_calls() == []
        assert sink.clear_count() == 1
        assert engine.state == EngineState.IDLE
