"""Named colors and custom strip patterns."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .exceptions import ValidationError


class Transition(str, Enum):
    """Custom pattern transition types understood by the strip"""

    FADE = "fade"
    JUMP = "jump"
    STROBE = "strobe"


@dataclass(frozen=True)
class Color:
    """RGBA color, every channel 0-255 (alpha is strip brightness)"""

    red: int
    green: int
    blue: int
    brightness: int = 255

    def __post_init__(self):
        for name in ("red", "green", "blue", "brightness"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValidationError(f"Color {name} must be between 0 and 255")

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.brightness)

    def scaled(self) -> Tuple[int, int, int]:
        """RGB with brightness folded in"""
        factor = self.brightness / 255
        return (
            round(self.red * factor),
            round(self.green * factor),
            round(self.blue * factor),
        )


@dataclass(frozen=True)
class Pattern:
    """Custom multi-color pattern played by the strip"""

    id: str
    colors: Tuple[Color, ...]
    transition: Transition
    speed: int = 50

    def __post_init__(self):
        if not self.colors:
            raise ValidationError(f"Pattern {self.id} needs at least one color")
        if len(self.colors) > 16:
            raise ValidationError(f"Pattern {self.id} has more than 16 colors")
        if not 0 <= self.speed <= 100:
            raise ValidationError("Pattern speed must be between 0 and 100")


COLORS: Dict[str, Color] = {
    "white": Color(255, 255, 255),
    "red": Color(255, 0, 0),
    "green": Color(0, 255, 0),
    "blue": Color(0, 0, 255),
    "orange": Color(255, 35, 0),
    "cyan": Color(0, 255, 255),
    "purple": Color(255, 0, 255),
}

PATTERNS: Dict[str, Pattern] = {
    "sloworange": Pattern(
        "sloworange", (Color(255, 35, 0), Color(128, 16, 0)), Transition.FADE, 50
    ),
    "slowpurple": Pattern(
        "slowpurple", (Color(255, 0, 255), Color(128, 0, 72)), Transition.FADE, 50
    ),
    "synthwave": Pattern(
        "synthwave", (COLORS["orange"], COLORS["purple"]), Transition.FADE, 70
    ),
    "aquatic": Pattern(
        "aquatic", (Color(0, 255, 75), Color(0, 75, 255)), Transition.FADE, 70
    ),
}

# Strobe patterns are named "<color>strobe"
for _name in ("white", "purple", "green", "orange", "blue", "red"):
    PATTERNS[f"{_name}strobe"] = Pattern(
        f"{_name}strobe", (COLORS[_name],), Transition.STROBE, 100
    )

# Choices viewers may enter when redeeming a light change
REDEMPTION_CHOICES = (
    "white",
    "red",
    "green",
    "blue",
    "cyan",
    "orange",
    "purple",
    "aquatic",
    "synthwave",
)


def _clean(name: str) -> str:
    return name.strip().lower().lstrip("!")


def lookup_color(name: str) -> Optional[Color]:
    """Resolve a color name (``red``, ``!red``, `` Red ``) or None"""
    if not isinstance(name, str):
        return None
    return COLORS.get(_clean(name))


def lookup_pattern(name: str) -> Optional[Pattern]:
    """Resolve a pattern name or None"""
    if not isinstance(name, str):
        return None
    return PATTERNS.get(_clean(name))


def lookup_ambient_pattern(name: str) -> Optional[Pattern]:
    """Resolve a pattern that may rest as ambient; strobes never do"""
    pattern = lookup_pattern(name)
    if pattern is None or pattern.transition is Transition.STROBE:
        return None
    return pattern


def strobe_pattern(color_name: str) -> Pattern:
    """Strobe pattern for a named color, white when the color has none"""
    return PATTERNS.get(f"{_clean(color_name)}strobe", PATTERNS["whitestrobe"])
