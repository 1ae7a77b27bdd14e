import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Dashboard observers that mirror game frames and prize pool updates"""

    def __init__(self, heartbeat_interval: float = 1.0):
        self.active_connections: Set[WebSocket] = set()
        self.heartbeat_interval = heartbeat_interval
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"Observer connected ({self.count} watching)")

    async def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"Observer left ({self.count} watching)")

    async def broadcast_message(self, message: Dict[str, Any]) -> None:
        """Send a JSON message to every observer, dropping the ones that fail"""
        dead = []
        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(message)
            except WebSocketDisconnect:
                dead.append(websocket)
            except Exception as e:
                logger.error(f"Observer send failed: {e}")
                dead.append(websocket)
        for websocket in dead:
            await self.disconnect(websocket)

    async def broadcast_update(self, frame: str) -> None:
        """Relay a decoded game telemetry frame"""
        await self.broadcast_message({"type": "update", "data": frame})

    async def broadcast_payload(self, payload: Dict[str, Any]) -> None:
        """Relay a prize pool payload"""
        await self.broadcast_message({"type": "payload", "payload": payload})

    async def start(self) -> None:
        if self._heartbeat_task is None:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            logger.info("Observer heartbeat started")

    async def stop(self) -> None:
        """Stop heartbeats and close every observer"""
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        for websocket in list(self.active_connections):
            try:
                await websocket.close()
            except Exception as e:
                logger.error(f"Error closing observer: {e}")
        self.active_connections.clear()
        logger.info("Observers closed")

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.broadcast_message({"type": "heartbeat"})
