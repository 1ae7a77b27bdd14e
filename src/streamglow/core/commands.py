"""Normalized command vocabulary shared by adapters, the API and the router."""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple, Union
from uuid import uuid4

from ..common.colors import COLORS, Color, strobe_pattern
from ..common.exceptions import ValidationError
from .state import AmbientState


class CommandKind(Enum):
    """Command variants handled by the router"""

    AMBIENT_COLOR = auto()
    TRANSIENT_EFFECT = auto()
    POWER = auto()
    BRIGHTNESS = auto()
    TEMPERATURE = auto()
    DEVICE_SELECTOR = auto()
    # Internal control signals
    SCORE_UPDATE = auto()
    GOAL_SCORED = auto()
    MATCH_LIFECYCLE = auto()
    DEMOLITION = auto()
    PRIZE_UPDATE = auto()


class DeviceSelector(Enum):
    """Physical output targets"""

    STRIP = "strip"
    PANEL = "panel"
    BOTH = "both"

    @property
    def targets(self) -> Tuple["DeviceSelector", ...]:
        """Individual devices covered by this selector"""
        if self is DeviceSelector.BOTH:
            return (DeviceSelector.STRIP, DeviceSelector.PANEL)
        return (self,)


class SourcePriority(Enum):
    """Origin of a command

    Viewer and request strobes revert to the stream color. Ambient commands
    with equal timestamps apply in arrival order whatever their origin.
    """

    GAME = 0  # Live match events
    REQUEST = 1  # Inbound HTTP requests
    VIEWER = 2  # Channel points, bits, subscriptions
    SYSTEM = 3  # Chained commands, startup defaults


@dataclass(frozen=True)
class TransientEffect:
    """Time-boxed effect that reverts to ambient on expiry

    ``revert_target`` of None means "whatever the device's ambient is when
    the effect expires". ``flash_color`` plays a solid color instead of a
    custom pattern.
    """

    pattern_id: str
    duration_ms: int
    revert_target: Optional[AmbientState] = None
    chained_command: Optional["Command"] = None
    flash_color: Optional[Color] = None
    panel_off: bool = True

    def __post_init__(self):
        if self.duration_ms < 0:
            raise ValidationError("Effect duration must not be negative")

    @classmethod
    def strobe(
        cls,
        color_name: str,
        duration_ms: int,
        revert_target: Optional[AmbientState] = None,
        chained_command: Optional["Command"] = None,
    ) -> "TransientEffect":
        return cls(
            pattern_id=strobe_pattern(color_name).id,
            duration_ms=duration_ms,
            revert_target=revert_target,
            chained_command=chained_command,
        )

    @classmethod
    def demo(
        cls, duration_ms: int, revert_target: Optional[AmbientState] = None
    ) -> "TransientEffect":
        """Flash the strip red with the panel off"""
        return cls(
            pattern_id="demo",
            duration_ms=duration_ms,
            revert_target=revert_target,
            flash_color=COLORS["red"],
        )


# Payloads


@dataclass(frozen=True)
class AmbientPayload:
    state: AmbientState
    # Viewer or request choice that becomes the stream color
    stream: bool = False


@dataclass(frozen=True)
class TransientPayload:
    effect: TransientEffect


@dataclass(frozen=True)
class PowerPayload:
    on: bool


@dataclass(frozen=True)
class LevelPayload:
    value: int


@dataclass(frozen=True)
class SelectorPayload:
    device: DeviceSelector


@dataclass(frozen=True)
class ScorePayload:
    team_a_name: Optional[str]
    team_a_score: int
    team_b_name: Optional[str]
    team_b_score: int


@dataclass(frozen=True)
class GoalPayload:
    team: int
    scorer: Optional[str] = None


@dataclass(frozen=True)
class MatchPayload:
    event: str


@dataclass(frozen=True)
class DemolitionPayload:
    attacker: Optional[str] = None
    victim: Optional[str] = None


@dataclass(frozen=True)
class PrizePayload:
    place: str
    amount: float
    donor: Optional[str] = None
    # False when the ledger already holds the change
    record: bool = True

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "donation",
            "data": {"from": self.donor, "place": self.place, "amount": self.amount},
        }


Payload = Union[
    AmbientPayload,
    TransientPayload,
    PowerPayload,
    LevelPayload,
    SelectorPayload,
    ScorePayload,
    GoalPayload,
    MatchPayload,
    DemolitionPayload,
    PrizePayload,
]

_PAYLOAD_TYPES = {
    CommandKind.AMBIENT_COLOR: AmbientPayload,
    CommandKind.TRANSIENT_EFFECT: TransientPayload,
    CommandKind.POWER: PowerPayload,
    CommandKind.BRIGHTNESS: LevelPayload,
    CommandKind.TEMPERATURE: LevelPayload,
    CommandKind.DEVICE_SELECTOR: SelectorPayload,
    CommandKind.SCORE_UPDATE: ScorePayload,
    CommandKind.GOAL_SCORED: GoalPayload,
    CommandKind.MATCH_LIFECYCLE: MatchPayload,
    CommandKind.DEMOLITION: DemolitionPayload,
    CommandKind.PRIZE_UPDATE: PrizePayload,
}


@dataclass(frozen=True)
class Command:
    """Immutable instruction consumed by the command router

    ``device`` of None targets the router's current default selector.
    """

    kind: CommandKind
    payload: Payload
    device: Optional[DeviceSelector] = None
    priority: SourcePriority = SourcePriority.SYSTEM
    source: str = "system"
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self):
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise ValidationError(
                f"{self.kind.name} command needs {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )
        if self.kind is CommandKind.BRIGHTNESS and not 0 <= self.payload.value <= 100:
            raise ValidationError("Brightness must be between 0 and 100")
        if self.kind is CommandKind.TEMPERATURE and not 143 <= self.payload.value <= 344:
            raise ValidationError("Temperature must be between 143 and 344")

    def describe(self) -> str:
        return f"{self.kind.name} from {self.source}"


# Constructors used by adapters and the API


def ambient_command(
    state: AmbientState,
    device: Optional[DeviceSelector] = DeviceSelector.STRIP,
    stream: bool = False,
    priority: SourcePriority = SourcePriority.SYSTEM,
    source: str = "system",
) -> Command:
    return Command(
        CommandKind.AMBIENT_COLOR,
        AmbientPayload(state, stream=stream),
        device=device,
        priority=priority,
        source=source,
    )


def normalize_color(
    name: str,
    priority: SourcePriority = SourcePriority.VIEWER,
    source: str = "viewer",
) -> Optional[Command]:
    """Stream ambient command for a color or resting pattern name, None if invalid"""
    state = AmbientState.from_name(name) if isinstance(name, str) else None
    if state is None:
        return None
    return ambient_command(
        state, DeviceSelector.STRIP, stream=True, priority=priority, source=source
    )


def strobe_command(
    color_name: str,
    duration_ms: int,
    revert_target: Optional[AmbientState] = None,
    chained_command: Optional[Command] = None,
    priority: SourcePriority = SourcePriority.SYSTEM,
    source: str = "system",
) -> Command:
    effect = TransientEffect.strobe(
        color_name, duration_ms, revert_target, chained_command
    )
    return Command(
        CommandKind.TRANSIENT_EFFECT,
        TransientPayload(effect),
        device=DeviceSelector.STRIP,
        priority=priority,
        source=source,
    )
