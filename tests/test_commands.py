"""Tests for colors, ambient state and command normalization."""

import pytest

from streamglow.common.colors import (
    COLORS,
    PATTERNS,
    REDEMPTION_CHOICES,
    Color,
    Pattern,
    Transition,
    lookup_ambient_pattern,
    lookup_color,
    strobe_pattern,
)
from streamglow.common.exceptions import ValidationError
from streamglow.core.commands import (
    Command,
    CommandKind,
    DeviceSelector,
    LevelPayload,
    PowerPayload,
    PrizePayload,
    SourcePriority,
    TransientEffect,
    normalize_color,
    strobe_command,
)
from streamglow.core.state import AmbientState, ScoreTracker


class TestColors:
    """Named colors and patterns"""

    def test_channel_range(self):
        with pytest.raises(ValidationError):
            Color(256, 0, 0)
        with pytest.raises(ValidationError):
            Color(0, -1, 0)

    def test_scaled_brightness(self):
        assert Color(255, 100, 0, 255).scaled() == (255, 100, 0)
        assert Color(255, 100, 0, 0).scaled() == (0, 0, 0)

    def test_pattern_limits(self):
        with pytest.raises(ValidationError):
            Pattern("empty", (), Transition.FADE)
        with pytest.raises(ValidationError):
            Pattern("long", (COLORS["red"],) * 17, Transition.FADE)

    def test_lookup_accepts_command_prefix_and_case(self):
        assert lookup_color("!Red ") == COLORS["red"]
        assert lookup_color("magenta") is None
        assert lookup_color(None) is None

    def test_strobe_patterns(self):
        assert strobe_pattern("blue").id == "bluestrobe"
        assert strobe_pattern("cyan").id == "whitestrobe"
        assert PATTERNS["purplestrobe"].transition is Transition.STROBE

    def test_strobes_never_rest_as_ambient(self):
        assert lookup_ambient_pattern("Synthwave") is PATTERNS["synthwave"]
        assert lookup_ambient_pattern("bluestrobe") is None
        assert AmbientState.from_name("whitestrobe") is None


class TestNormalizeColor:
    """Viewer and request color choices"""

    @pytest.mark.parametrize("name", REDEMPTION_CHOICES)
    def test_every_redemption_choice_is_valid(self, name):
        command = normalize_color(name)
        assert command is not None
        assert command.kind is CommandKind.AMBIENT_COLOR
        assert command.device is DeviceSelector.STRIP
        assert command.payload.stream
        assert command.payload.state.name == name

    @pytest.mark.parametrize(
        "name", ["", "   ", "magenta", "red;blue", "!!", "whitestrobe", "!BlueStrobe"]
    )
    def test_invalid_names(self, name):
        assert normalize_color(name) is None

    def test_non_string(self):
        assert normalize_color(42) is None

    def test_pattern_name_gives_pattern_ambient(self):
        command = normalize_color("Synthwave", SourcePriority.REQUEST, "api")
        state = command.payload.state
        assert state.pattern_id == "synthwave"
        assert state.pattern is PATTERNS["synthwave"]
        assert command.priority is SourcePriority.REQUEST
        assert command.source == "api"


class TestCommand:
    """Command construction and validation"""

    def test_payload_must_match_kind(self):
        with pytest.raises(ValidationError):
            Command(CommandKind.POWER, LevelPayload(10))

    def test_level_ranges(self):
        Command(CommandKind.BRIGHTNESS, LevelPayload(100))
        with pytest.raises(ValidationError):
            Command(CommandKind.BRIGHTNESS, LevelPayload(101))
        with pytest.raises(ValidationError):
            Command(CommandKind.TEMPERATURE, LevelPayload(100))
        Command(CommandKind.TEMPERATURE, LevelPayload(213))

    def test_commands_are_immutable(self):
        command = Command(CommandKind.POWER, PowerPayload(True))
        with pytest.raises(AttributeError):
            command.device = DeviceSelector.PANEL

    def test_strobe_command(self):
        command = strobe_command("purple", 3000, priority=SourcePriority.VIEWER)
        effect = command.payload.effect
        assert command.kind is CommandKind.TRANSIENT_EFFECT
        assert effect.pattern_id == "purplestrobe"
        assert effect.duration_ms == 3000
        assert effect.panel_off
        assert effect.revert_target is None

    def test_negative_duration(self):
        with pytest.raises(ValidationError):
            TransientEffect("whitestrobe", -1)

    def test_demo_effect_flashes_red(self):
        effect = TransientEffect.demo(1000)
        assert effect.flash_color == COLORS["red"]
        assert effect.panel_off

    def test_prize_message(self):
        payload = PrizePayload("second", 5.0, donor="alice")
        assert payload.to_message() == {
            "type": "donation",
            "data": {"from": "alice", "place": "second", "amount": 5.0},
        }

    def test_selector_targets(self):
        assert DeviceSelector.BOTH.targets == (
            DeviceSelector.STRIP,
            DeviceSelector.PANEL,
        )
        assert DeviceSelector.PANEL.targets == (DeviceSelector.PANEL,)


class TestScoreTracker:
    """Score state and leader"""

    def test_leader(self):
        scores = ScoreTracker()
        assert scores.leader() is None
        scores.update("Blue", 2, "Orange", 1)
        assert scores.leader() == 0
        scores.update("Blue", 2, "Orange", 3)
        assert scores.leader() == 1
        scores.reset()
        assert scores.leader() is None

    def test_get_state(self):
        scores = ScoreTracker()
        scores.update("A", 1, "B", 0)
        state = scores.get_state()
        assert state["team_a"] == {"name": "A", "score": 1}
        assert state["team_b"] == {"name": "B", "score": 0}


class TestAmbientState:
    def test_named_unknown(self):
        with pytest.raises(KeyError):
            AmbientState.named("nope")

    def test_default_is_white_and_on(self):
        state = AmbientState()
        assert state.color == COLORS["white"]
        assert state.power
        assert state.to_dict()["name"] == "white"
