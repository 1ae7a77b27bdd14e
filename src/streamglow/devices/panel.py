"""Elgato style key light panel driven over its HTTP/JSON API."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..common.colors import Color, Pattern
from ..common.exceptions import DeviceError, UnsupportedOperation
from .base import DeviceBackend

logger = logging.getLogger(__name__)

# Preferred power-on defaults restored by reset_settings()
DEFAULT_SETTINGS = {
    "powerOnBehavior": 1,
    "powerOnBrightness": 20,
    "powerOnTemperature": 213,
    "switchOnDurationMs": 300,
    "switchOffDurationMs": 300,
    "colorChangeDurationMs": 100,
}


class KeyLightPanel(DeviceBackend):
    """Single-zone panel light with power, brightness and temperature"""

    name = "panel"

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self._state.error_count += 1
            raise DeviceError(f"panel {method} {path}: {e}") from e
        if not response.content:
            return {}
        return response.json()

    async def _put_light(self, **values: Any) -> None:
        await self._request(
            "PUT", "/elgato/lights", {"numberOfLights": 1, "lights": [values]}
        )
        self._state.touch()
        logger.info(f"<Keylight> @:{self.base_url}: set to {values}")

    async def set_color(self, color: Color) -> None:
        raise UnsupportedOperation("panel has no color channel")

    async def set_pattern(self, pattern: Pattern, speed: int) -> None:
        raise UnsupportedOperation("panel has no pattern support")

    async def set_power(self, on: bool) -> None:
        await self._put_light(on=1 if on else 0)
        self._state.is_on = on

    async def set_brightness(self, value: int) -> None:
        await self._put_light(brightness=value)
        self._state.brightness = value

    async def set_temperature(self, value: int) -> None:
        await self._put_light(temperature=value)
        self._state.temperature = value

    async def accessory_info(self) -> Dict[str, Any]:
        """Model, firmware revision and serial number"""
        return await self._request("GET", "/elgato/accessory-info")

    async def settings(self) -> Dict[str, Any]:
        return await self._request("GET", "/elgato/lights/settings")

    async def lights(self) -> Dict[str, Any]:
        return await self._request("GET", "/elgato/lights")

    async def reset_settings(self) -> None:
        """Restore preferred power-on defaults"""
        await self._request("PUT", "/elgato/lights/settings", DEFAULT_SETTINGS)
        logger.info(f"<Keylight> @{self.base_url}: defaults applied")

    async def close(self) -> None:
        await self._client.aclose()
