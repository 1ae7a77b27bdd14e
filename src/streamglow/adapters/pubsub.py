"""Stream platform pub/sub feed: channel points, bits and subscriptions."""

import asyncio
import logging
import random
import string
from typing import Any, List, Optional

from ..common.colors import REDEMPTION_CHOICES
from ..common.exceptions import PayloadError
from ..core.commands import Command, SourcePriority, normalize_color, strobe_command
from .base import WebSocketAdapter, parse_json

logger = logging.getLogger(__name__)

NONCE_ALPHABET = string.ascii_letters + string.digits


def nonce(length: int = 15) -> str:
    return "".join(random.choice(NONCE_ALPHABET) for _ in range(length))


def normalize_redemption(user_input: Any) -> Optional[Command]:
    """Stream ambient command for a redeemed color, None when not allowed"""
    if not isinstance(user_input, str):
        return None
    value = user_input.strip().lower()
    if value not in REDEMPTION_CHOICES:
        return None
    return normalize_color(value, priority=SourcePriority.VIEWER, source="pubsub")


class PubSubAdapter(WebSocketAdapter):
    """PING/LISTEN/MESSAGE/RECONNECT websocket protocol

    On open a PING is sent at once and then every ``heartbeat_interval``
    seconds. Topics are subscribed ``subscribe_delay`` seconds after open,
    since the server does not accept LISTEN right away.
    """

    name = "PUBSUB"

    def __init__(
        self,
        url,
        emit,
        channel_id: str,
        auth_token: str = "",
        reconnect_delay: float = 3.0,
        heartbeat_interval: float = 60.0,
        subscribe_delay: float = 3.0,
        strobe_ms: int = 3000,
        connect=None,
    ):
        super().__init__(url, emit, reconnect_delay, connect)
        self.channel_id = channel_id
        self.auth_token = auth_token
        self.heartbeat_interval = heartbeat_interval
        self.subscribe_delay = subscribe_delay
        self.strobe_ms = strobe_ms
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._subscribe_task: Optional[asyncio.Task] = None

    @property
    def points_topic(self) -> str:
        return f"channel-points-channel-v1.{self.channel_id}"

    @property
    def bits_topic(self) -> str:
        return f"channel-bits-events-v1.{self.channel_id}"

    @property
    def subs_topic(self) -> str:
        return f"channel-subscribe-events-v1.{self.channel_id}"

    @property
    def topics(self) -> List[str]:
        return [self.points_topic, self.bits_topic, self.subs_topic]

    # Connection hooks

    async def on_open(self) -> None:
        await self.send_json({"type": "PING"})
        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        self._subscribe_task = asyncio.create_task(self._subscribe_later())

    async def on_close(self) -> None:
        for task in (self._heartbeat_task, self._subscribe_task):
            if task is not None and not task.done():
                task.cancel()
        self._heartbeat_task = None
        self._subscribe_task = None

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.send_json({"type": "PING"})
            except Exception as e:
                logger.warning(f"{self.name}: PING failed: {e}")

    async def _subscribe_later(self) -> None:
        await asyncio.sleep(self.subscribe_delay)
        await self.send_json(
            {
                "type": "LISTEN",
                "nonce": nonce(15),
                "data": {"topics": self.topics, "auth_token": self.auth_token},
            }
        )
        logger.info(f"{self.name}: listening to {', '.join(self.topics)}")

    # Frames

    async def handle_message(self, raw: Any) -> None:
        message = parse_json(raw)
        if not isinstance(message, dict):
            raise PayloadError("frame is not an object")
        kind = message.get("type")

        if kind == "PONG":
            return
        if kind == "RESPONSE":
            if message.get("error"):
                logger.warning(f"{self.name}: LISTEN rejected: {message['error']}")
            return
        if kind == "RECONNECT":
            await self.request_reconnect()
            return
        if kind == "MESSAGE":
            await self._handle_topic_message(message.get("data") or {})
            return
        logger.info(f"{self.name}: unhandled frame type {kind!r}")

    async def _handle_topic_message(self, data: dict) -> None:
        topic = data.get("topic")
        body = parse_json(data.get("message"))

        if topic == self.points_topic:
            redemption = ((body or {}).get("data") or {}).get("redemption") or {}
            user_input = redemption.get("user_input")
            if not user_input:
                return
            command = normalize_redemption(user_input)
            if command is None:
                logger.warning(f"Light redemption: invalid colour choice {user_input!r}")
                return
            logger.info(f"User redeemed light change, chose: {user_input.strip().lower()}")
            await self.emit(command)
        elif topic in (self.bits_topic, self.subs_topic):
            event = "bits" if topic == self.bits_topic else "subscription"
            logger.info(f"Triggering purple strobe for {event} event")
            await self.emit(
                strobe_command(
                    "purple",
                    self.strobe_ms,
                    priority=SourcePriority.VIEWER,
                    source="pubsub",
                )
            )
        else:
            logger.info(f"{self.name}: message on unknown topic {topic!r}")
