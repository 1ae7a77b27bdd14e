"""Donation/alert feed over socket.io; tips feed the prize pool."""

import logging
from typing import Any, Callable, Optional

import socketio

from ..core.commands import Command, CommandKind, PrizePayload, SourcePriority
from .base import Emit, SourceAdapter

logger = logging.getLogger(__name__)

# Free-text tip message -> prize slot
PRIZE_SLOT_ALIASES = {
    "1": "first",
    "1st": "first",
    "first": "first",
    "2": "second",
    "2nd": "second",
    "second": "second",
    "3": "third",
    "3rd": "third",
    "third": "third",
}


def prize_slot(message: Any) -> Optional[str]:
    if not isinstance(message, str):
        return None
    return PRIZE_SLOT_ALIASES.get(message.strip().lower())


def normalize_tip(data: Any) -> Optional[Command]:
    """Prize update for a tip event, None when it names no prize slot"""
    if not isinstance(data, dict):
        return None
    place = prize_slot(data.get("message"))
    if place is None:
        return None
    try:
        amount = float(data.get("amount"))
    except (TypeError, ValueError):
        return None
    return Command(
        CommandKind.PRIZE_UPDATE,
        PrizePayload(place=place, amount=amount, donor=data.get("username")),
        priority=SourcePriority.VIEWER,
        source="donations",
    )


class DonationAdapter(SourceAdapter):
    """socket.io alert feed authenticated with a JWT

    socket.io's own reconnection is disabled so the fixed-delay reconnect
    of ``SourceAdapter`` applies here too.
    """

    name = "DONATIONS"

    def __init__(
        self,
        url: str,
        emit: Emit,
        token: str,
        reconnect_delay: float = 3.0,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        super().__init__(emit, reconnect_delay)
        self.url = url
        self.token = token
        self._client_factory = client_factory or (
            lambda: socketio.AsyncClient(reconnection=False)
        )
        self._sio = None

    async def _session(self) -> None:
        sio = self._client_factory()
        self._register(sio)
        self._sio = sio
        try:
            await sio.connect(self.url, transports=["websocket"])
            self._mark_connected()
            await sio.wait()
        finally:
            self._sio = None

    def _register(self, sio) -> None:
        @sio.event
        async def connect():
            logger.info(f"WS. INFO: Socket Opened -> {self.name}")
            await sio.emit("authenticate", {"method": "jwt", "token": self.token})

        @sio.event
        async def disconnect(*args):
            logger.info(f"{self.name}: disconnected from websocket")

        @sio.on("authenticated")
        async def on_authenticated(data):
            channel = (data or {}).get("channelId")
            logger.info(f"WS. RECV: <- {self.name}: connected to channel {channel}")

        @sio.on("unauthorized")
        async def on_unauthorized(data):
            logger.error(f"{self.name}: authentication rejected: {data}")

        @sio.on("event")
        async def on_event(data):
            await self.handle_event(data)

        for name in ("event:test", "event:update", "event:reset"):
            sio.on(name, self._log_event(name))

    def _log_event(self, name: str):
        async def handler(data):
            logger.debug(f"WS. RECV: <- {self.name} {name}: {data}")

        return handler

    async def handle_event(self, event: Any) -> None:
        logger.debug(f"WS. RECV: <- {self.name}: {event}")
        if not isinstance(event, dict) or event.get("type") != "tip":
            return
        data = event.get("data")
        command = normalize_tip(data)
        if command is None:
            logger.info(f"{self.name}: tip without prize slot: {data}")
            return
        p = command.payload
        logger.info(f"Donation of {p.amount} from {p.donor} to the {p.place} pool")
        await self.emit(command)

    async def _close(self) -> None:
        if self._sio is not None:
            await self._sio.disconnect()
