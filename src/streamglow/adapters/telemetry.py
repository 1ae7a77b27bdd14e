"""Live game telemetry feed (score, goals, demolitions, match lifecycle)."""

import base64
import binascii
import logging
from typing import Any, Dict, Optional

from ..common.exceptions import PayloadError
from ..core.commands import (
    Command,
    CommandKind,
    DemolitionPayload,
    DeviceSelector,
    GoalPayload,
    MatchPayload,
    ScorePayload,
    SourcePriority,
)
from .base import WebSocketAdapter, parse_json

logger = logging.getLogger(__name__)

MATCH_EVENTS = ("game:match_created", "game:match_ended", "game:match_destroyed")


def decode_frame(raw: Any) -> str:
    """Return the JSON text of a frame sent plain or base64 encoded

    A frame whose first character is ``{`` is plain JSON; anything else is
    base64.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadError(f"frame is not UTF-8: {e}") from e
    if not isinstance(raw, str) or not raw:
        raise PayloadError("empty frame")
    if raw[0] == "{":
        return raw
    try:
        return base64.b64decode(raw, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise PayloadError(f"frame is neither JSON nor base64: {e}") from e


def _team(game: Dict[str, Any], index: int) -> Dict[str, Any]:
    try:
        return game["teams"][index]
    except (KeyError, IndexError, TypeError) as e:
        raise PayloadError(f"update_state without team {index}") from e


def normalize_event(event: str, data: Any) -> Optional[Command]:
    """Translate one telemetry event into a command, None if uninteresting"""
    game_command = dict(priority=SourcePriority.GAME, source="telemetry")
    if not isinstance(data, dict):
        data = {}

    if event == "game:update_state":
        game = data.get("game")
        if not isinstance(game, dict):
            raise PayloadError("update_state without game data")
        team_a, team_b = _team(game, 0), _team(game, 1)
        return Command(
            CommandKind.SCORE_UPDATE,
            ScorePayload(
                team_a.get("name"),
                int(team_a.get("score") or 0),
                team_b.get("name"),
                int(team_b.get("score") or 0),
            ),
            **game_command,
        )

    if event == "game:goal_scored":
        scorer = data.get("scorer") or {}
        if "teamnum" not in scorer:
            raise PayloadError("goal_scored without scorer team")
        return Command(
            CommandKind.GOAL_SCORED,
            GoalPayload(int(scorer["teamnum"]), scorer.get("name")),
            device=DeviceSelector.STRIP,
            **game_command,
        )

    if event in MATCH_EVENTS:
        return Command(
            CommandKind.MATCH_LIFECYCLE,
            MatchPayload(event.split("_", 1)[1]),
            device=DeviceSelector.BOTH,
            **game_command,
        )

    if event == "game:statfeed_event":
        if data.get("type") != "Demolition":
            return None
        attacker = (data.get("main_target") or {}).get("name")
        victim = (data.get("secondary_target") or {}).get("name")
        return Command(
            CommandKind.DEMOLITION,
            DemolitionPayload(attacker, victim),
            device=DeviceSelector.STRIP,
            **game_command,
        )

    return None


class TelemetryAdapter(WebSocketAdapter):
    """Game plugin websocket; frames are ``{"event": ..., "data": ...}``"""

    name = "TELEMETRY"

    def __init__(self, url, emit, reconnect_delay=3.0, connect=None, observers=None):
        super().__init__(url, emit, reconnect_delay, connect)
        self.observers = observers

    async def handle_message(self, raw: Any) -> None:
        text = decode_frame(raw)
        message = parse_json(text)
        if not isinstance(message, dict) or "event" not in message:
            raise PayloadError("frame without event field")

        if self.observers is not None:
            await self.observers.broadcast_update(text)

        command = normalize_event(message["event"], message.get("data"))
        if command is None:
            logger.debug(f"{self.name}: ignoring {message['event']}")
            return
        await self.emit(command)
