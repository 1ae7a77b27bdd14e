"""Magic Home style RGB strip controller spoken over raw TCP."""

import asyncio
import logging
from typing import List, Optional

from ..common.colors import Color, Pattern, Transition
from ..common.exceptions import DeviceError, UnsupportedOperation
from .base import DeviceBackend

logger = logging.getLogger(__name__)

POWER_ON = 0x23
POWER_OFF = 0x24
TRANSITION_BYTES = {
    Transition.FADE: 0x3A,
    Transition.JUMP: 0x3B,
    Transition.STROBE: 0x3C,
}
PATTERN_SLOTS = 16
# Filler for unused custom pattern slots
EMPTY_SLOT = [0x01, 0x02, 0x03, 0x00]


def checksum(payload: List[int]) -> int:
    return sum(payload) & 0xFF


def frame(payload: List[int]) -> bytes:
    """Append the trailing checksum byte"""
    return bytes(payload + [checksum(payload)])


def power_frame(on: bool) -> bytes:
    return frame([0x71, POWER_ON if on else POWER_OFF, 0x0F])


def color_frame(color: Color) -> bytes:
    red, green, blue = color.scaled()
    return frame([0x31, red, green, blue, 0x00, 0x00, 0xF0, 0x0F])


def speed_to_delay(speed: int) -> int:
    """Map pattern speed 0-100 to the controller's delay byte 0x1f-0x01"""
    speed = max(0, min(100, speed))
    return round(30 - (speed / 100) * 30) + 1


def pattern_frame(pattern: Pattern, speed: int) -> bytes:
    payload = [0x51]
    for index in range(PATTERN_SLOTS):
        if index < len(pattern.colors):
            c = pattern.colors[index]
            payload += [c.red, c.green, c.blue, 0x00]
        else:
            payload += EMPTY_SLOT
    payload += [speed_to_delay(speed), TRANSITION_BYTES[pattern.transition], 0xFF, 0x0F]
    return frame(payload)


class MagicHomeStrip(DeviceBackend):
    """Multi-zone RGB strip

    Each command opens a short-lived connection. Only power commands wait
    for the controller's acknowledgement.
    """

    name = "strip"

    def __init__(self, host: str, port: int = 5577, timeout: float = 2.0):
        super().__init__()
        self.host = host
        self.port = port
        self.timeout = timeout
        self._lock = asyncio.Lock()
        logger.info(f"<RGB Strip> configured at {host}:{port}")

    async def _send(self, data: bytes, expect_ack: bool = False) -> Optional[bytes]:
        async with self._lock:
            writer = None
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port), self.timeout
                )
                writer.write(data)
                await writer.drain()
                if expect_ack:
                    # Replies are occasionally short, accept whatever arrives
                    return await asyncio.wait_for(reader.read(4), self.timeout)
                return None
            except (OSError, asyncio.TimeoutError) as e:
                self._state.error_count += 1
                raise DeviceError(f"strip {self.host}:{self.port}: {e}") from e
            finally:
                if writer is not None:
                    writer.close()
                    try:
                        await writer.wait_closed()
                    except OSError:
                        pass

    async def set_color(self, color: Color) -> None:
        await self._send(color_frame(color))
        self._state.color = color
        self._state.pattern_id = None
        self._state.touch()
        logger.debug(f"<RGB Strip> @:{self.host}: color {color.as_tuple()}")

    async def set_pattern(self, pattern: Pattern, speed: int) -> None:
        await self._send(pattern_frame(pattern, speed))
        self._state.pattern_id = pattern.id
        self._state.touch()
        logger.debug(f"<RGB Strip> @:{self.host}: pattern {pattern.id} at {speed}")

    async def set_power(self, on: bool) -> None:
        reply = await self._send(power_frame(on), expect_ack=True)
        if reply is not None and len(reply) < 4:
            logger.debug(f"<RGB Strip> short power reply: {reply.hex()}")
        self._state.is_on = on
        self._state.touch()
        logger.info(f"<RGB Strip> @:{self.host}: set to {'ON' if on else 'OFF'}")

    async def set_brightness(self, value: int) -> None:
        """Re-send the current color at the new brightness"""
        if self._state.color is None:
            raise DeviceError("strip brightness needs a color to scale")
        current = self._state.color
        level = round(max(0, min(100, value)) * 255 / 100)
        await self.set_color(Color(current.red, current.green, current.blue, level))
        self._state.brightness = value

    async def set_temperature(self, value: int) -> None:
        raise UnsupportedOperation("strip has no white temperature channel")
