from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time

from ..common.colors import Color, Pattern


@dataclass
class DeviceState:
    """Last known state of an output device"""

    is_on: bool = True
    color: Optional[Color] = None
    pattern_id: Optional[str] = None
    brightness: Optional[int] = None
    temperature: Optional[int] = None
    last_update: float = field(default_factory=time.time)
    error_count: int = 0

    def touch(self) -> None:
        self.last_update = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_on": self.is_on,
            "color": list(self.color.as_tuple()) if self.color else None,
            "pattern": self.pattern_id,
            "brightness": self.brightness,
            "temperature": self.temperature,
            "last_update": self.last_update,
            "error_count": self.error_count,
        }


class DeviceBackend(ABC):
    """Capability contract for one physical output device

    Backends raise on failure; the facade turns failures into ``False``.
    Backends without a capability raise ``UnsupportedOperation``.
    """

    name: str = "device"

    def __init__(self):
        self._state = DeviceState()

    @abstractmethod
    async def set_color(self, color: Color) -> None:
        """Set a solid color"""
        pass

    @abstractmethod
    async def set_pattern(self, pattern: Pattern, speed: int) -> None:
        """Play a custom pattern"""
        pass

    @abstractmethod
    async def set_power(self, on: bool) -> None:
        """Power the device on or off"""
        pass

    @abstractmethod
    async def set_brightness(self, value: int) -> None:
        """Set brightness 0-100"""
        pass

    @abstractmethod
    async def set_temperature(self, value: int) -> None:
        """Set color temperature (kelvin-coded device units)"""
        pass

    async def close(self) -> None:
        """Release connections"""
        pass

    def get_state(self) -> Dict[str, Any]:
        """Get current device state"""
        return {"name": self.name, **self._state.to_dict()}
