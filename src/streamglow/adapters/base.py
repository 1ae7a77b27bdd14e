import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

import websockets

from ..common.exceptions import PayloadError
from ..core.commands import Command
from ..core.state import ConnectionState

logger = logging.getLogger(__name__)

Emit = Callable[[Command], Awaitable[Any]]


class SourceAdapter(ABC):
    """One resilient connection to an external feed

    While the adapter is wanted, every close or error moves it to
    DISCONNECTED and arms a fixed-delay reconnect timer. ``stop`` cancels
    that timer and suppresses reconnection.
    """

    name: str = "source"

    def __init__(self, emit: Emit, reconnect_delay: float = 3.0):
        self.emit = emit
        self.reconnect_delay = reconnect_delay
        self.connect_attempts = 0
        self.state_listeners: List[Callable[[ConnectionState], None]] = []
        self._state = ConnectionState.DISCONNECTED
        self._wanted = False
        self._task: Optional[asyncio.Task] = None
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def wanted(self) -> bool:
        return self._wanted

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.info(f"{self.name}: {self._state.name} -> {state.name}")
        self._state = state
        for listener in list(self.state_listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"{self.name}: state listener failed: {e}")

    def _mark_connected(self) -> None:
        self._set_state(ConnectionState.CONNECTED)

    # Lifecycle

    async def start(self) -> None:
        """Begin connecting"""
        if self._wanted:
            return
        self._wanted = True
        self._spawn()

    async def stop(self) -> None:
        """Tear down and suppress reconnection"""
        self._wanted = False
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if self._state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            self._set_state(ConnectionState.CLOSING)
        try:
            await self._close()
        except Exception as e:
            logger.debug(f"{self.name}: error while closing: {e}")
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._set_state(ConnectionState.DISCONNECTED)

    async def request_reconnect(self) -> None:
        """Drop the live connection and start a fresh connect cycle"""
        logger.info(f"{self.name}: reconnect requested")
        if self._state is ConnectionState.CONNECTED:
            self._set_state(ConnectionState.CLOSING)
        await self._close()

    def _spawn(self) -> None:
        self._reconnect_timer = None
        if not self._wanted:
            return
        self.connect_attempts += 1
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._run_once(), name=f"{self.name}-session")

    async def _run_once(self) -> None:
        try:
            await self._session()
            if self._state is ConnectionState.CONNECTED:
                self._set_state(ConnectionState.CLOSING)
            logger.info(f"{self.name}: connection closed")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._set_state(ConnectionState.ERRORED)
            logger.error(f"{self.name}: connection error: {e}")

        self._set_state(ConnectionState.DISCONNECTED)
        if self._wanted:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        logger.info(f"{self.name}: reconnecting in {self.reconnect_delay}s")
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(self.reconnect_delay, self._spawn)

    # Subclass hooks

    @abstractmethod
    async def _session(self) -> None:
        """Connect and consume until the connection ends

        Call ``_mark_connected`` once open. Return on a clean close, raise
        on failure.
        """
        pass

    @abstractmethod
    async def _close(self) -> None:
        """Close the live connection, if any"""
        pass

    def get_state(self) -> dict:
        return {
            "state": self._state.name,
            "wanted": self._wanted,
            "connect_attempts": self.connect_attempts,
        }


class WebSocketAdapter(SourceAdapter):
    """Source adapter over a plain websocket"""

    def __init__(
        self,
        url: str,
        emit: Emit,
        reconnect_delay: float = 3.0,
        connect: Optional[Callable[..., Any]] = None,
    ):
        super().__init__(emit, reconnect_delay)
        self.url = url
        self._connect = connect or websockets.connect
        self._ws = None

    async def _session(self) -> None:
        async with self._connect(self.url) as ws:
            self._ws = ws
            self._mark_connected()
            logger.info(f"WS. INFO: Socket Opened -> {self.name}")
            try:
                await self.on_open()
                async for message in ws:
                    await self._handle_frame(message)
            finally:
                self._ws = None
                await self.on_close()

    async def _handle_frame(self, raw: Any) -> None:
        logger.debug(f"WS. RECV: <- {self.name}: {raw!r:.200}")
        try:
            await self.handle_message(raw)
        except asyncio.CancelledError:
            raise
        except PayloadError as e:
            logger.warning(f"{self.name}: dropped malformed frame: {e}")
        except Exception as e:
            logger.error(f"{self.name}: error handling frame: {e}")

    async def _close(self) -> None:
        if self._ws is not None:
            await self._ws.close()

    async def send_json(self, message: dict) -> None:
        if self._ws is None:
            logger.warning(f"{self.name}: not connected, dropping {message.get('type')}")
            return
        await self._ws.send(json.dumps(message))
        logger.debug(f"WS. SENT: -> {self.name}: {message.get('type')}")

    async def on_open(self) -> None:
        pass

    async def on_close(self) -> None:
        pass

    @abstractmethod
    async def handle_message(self, raw: Any) -> None:
        """Decode one inbound frame and emit commands"""
        pass


def parse_json(text: str) -> Any:
    """json.loads that raises PayloadError"""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"invalid JSON: {e}") from e
