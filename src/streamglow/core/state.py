"""Device, score and connection state shared across the orchestrator."""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, Optional

from ..common.colors import (
    COLORS,
    Color,
    PATTERNS,
    lookup_ambient_pattern,
    lookup_color,
)

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Source adapter connection lifecycle"""

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    CLOSING = auto()
    ERRORED = auto()


@dataclass(frozen=True)
class AmbientState:
    """Resting color or pattern a device returns to between effects"""

    color: Color = COLORS["white"]
    pattern_id: Optional[str] = None
    power: bool = True
    name: str = "white"

    @classmethod
    def from_name(cls, name: str) -> Optional["AmbientState"]:
        """Ambient state for a color or pattern name, None when unknown"""
        pattern = lookup_ambient_pattern(name)
        if pattern:
            return cls(color=pattern.colors[0], pattern_id=pattern.id, name=pattern.id)
        color = lookup_color(name)
        if color:
            return cls(color=color, name=name.strip().lower().lstrip("!"))
        return None

    @classmethod
    def named(cls, name: str) -> "AmbientState":
        state = cls.from_name(name)
        if state is None:
            raise KeyError(name)
        return state

    @property
    def pattern(self):
        return PATTERNS.get(self.pattern_id) if self.pattern_id else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "color": list(self.color.as_tuple()),
            "pattern": self.pattern_id,
            "power": self.power,
        }


@dataclass
class ScoreState:
    """Two-team score as last reported by the game"""

    team_a_name: Optional[str] = None
    team_a_score: int = 0
    team_b_name: Optional[str] = None
    team_b_score: int = 0


@dataclass
class ScoreTracker:
    """Holds the current score; written only from the router's consumer"""

    state: ScoreState = field(default_factory=ScoreState)
    last_update: float = 0.0

    def update(
        self,
        team_a_name: Optional[str],
        team_a_score: int,
        team_b_name: Optional[str],
        team_b_score: int,
    ) -> None:
        """Replace the tracked score"""
        old = self.state
        self.state = replace(
            old,
            team_a_name=team_a_name,
            team_a_score=team_a_score,
            team_b_name=team_b_name,
            team_b_score=team_b_score,
        )
        self.last_update = time.time()
        if (old.team_a_score, old.team_b_score) != (team_a_score, team_b_score):
            logger.info(
                f"Score: '{team_a_name}' {team_a_score} - {team_b_score} '{team_b_name}'"
            )

    def leader(self) -> Optional[int]:
        """0 when team A leads, 1 when team B leads, None on a tie"""
        if self.state.team_a_score > self.state.team_b_score:
            return 0
        if self.state.team_b_score > self.state.team_a_score:
            return 1
        return None

    def reset(self) -> None:
        self.state = ScoreState()
        self.last_update = time.time()

    def get_state(self) -> Dict[str, Any]:
        return {
            "team_a": {"name": self.state.team_a_name, "score": self.state.team_a_score},
            "team_b": {"name": self.state.team_b_name, "score": self.state.team_b_score},
            "last_update": self.last_update,
        }
