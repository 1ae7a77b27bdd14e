import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..common.colors import Color, Pattern
from ..common.exceptions import UnsupportedOperation
from ..core.commands import DeviceSelector
from .base import DeviceBackend

logger = logging.getLogger(__name__)


class DeviceFacade:
    """Fire-and-forget command surface over the strip and panel backends

    Every call returns True on success. Failures are logged here and never
    raised, and nothing is retried.
    """

    def __init__(self, strip: DeviceBackend, panel: DeviceBackend):
        self.backends: Dict[DeviceSelector, DeviceBackend] = {
            DeviceSelector.STRIP: strip,
            DeviceSelector.PANEL: panel,
        }

    def backend(self, device: DeviceSelector) -> DeviceBackend:
        return self.backends[device]

    async def _call(
        self,
        device: DeviceSelector,
        operation: str,
        call: Callable[[DeviceBackend], Awaitable[None]],
    ) -> bool:
        results = []
        for target in device.targets:
            backend = self.backends[target]
            try:
                await call(backend)
                results.append(True)
            except UnsupportedOperation as e:
                logger.debug(f"{backend.name}: {operation} skipped: {e}")
                results.append(False)
            except Exception as e:
                logger.error(f"{backend.name}: {operation} failed: {e}")
                results.append(False)
        return all(results)

    async def set_color(self, device: DeviceSelector, color: Color) -> bool:
        return await self._call(device, "set_color", lambda b: b.set_color(color))

    async def set_pattern(
        self, device: DeviceSelector, pattern: Pattern, speed: Optional[int] = None
    ) -> bool:
        speed = pattern.speed if speed is None else speed
        return await self._call(
            device, f"set_pattern({pattern.id})", lambda b: b.set_pattern(pattern, speed)
        )

    async def set_power(self, device: DeviceSelector, on: bool) -> bool:
        return await self._call(device, "set_power", lambda b: b.set_power(on))

    async def set_brightness(self, device: DeviceSelector, value: int) -> bool:
        return await self._call(
            device, "set_brightness", lambda b: b.set_brightness(value)
        )

    async def set_temperature(self, device: DeviceSelector, value: int) -> bool:
        return await self._call(
            device, "set_temperature", lambda b: b.set_temperature(value)
        )

    async def close(self) -> None:
        for backend in self.backends.values():
            try:
                await backend.close()
            except Exception as e:
                logger.error(f"Error closing {backend.name}: {e}")

    def get_state(self) -> Dict[str, Any]:
        return {
            device.value: backend.get_state()
            for device, backend in self.backends.items()
        }


def create_facade(config) -> DeviceFacade:
    """Factory function to build the facade from ``DeviceConfig``"""
    if config.backend == "mock":
        from .mock import MockBackend

        logger.info("Using mock device backends")
        return DeviceFacade(
            strip=MockBackend("strip"),
            panel=MockBackend("panel", supports_color=False),
        )

    from .panel import KeyLightPanel
    from .strip import MagicHomeStrip

    return DeviceFacade(
        strip=MagicHomeStrip(config.strip_host, config.strip_port, config.timeout),
        panel=KeyLightPanel(config.panel_url, timeout=config.timeout),
    )
