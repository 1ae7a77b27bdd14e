from typing import Any, Dict, List, Optional, Set, Tuple
import logging

from ..common.colors import Color, Pattern
from ..common.exceptions import DeviceError, UnsupportedOperation
from .base import DeviceBackend

logger = logging.getLogger(__name__)


class MockBackend(DeviceBackend):
    """In-memory device for development and tests without hardware

    Every call is appended to ``calls`` as ``(operation, argument)``.
    Operations listed in ``fail_on`` raise ``DeviceError``.
    """

    def __init__(
        self,
        name: str = "mock",
        supports_color: bool = True,
        fail_on: Optional[Set[str]] = None,
    ):
        super().__init__()
        self.name = name
        self.supports_color = supports_color
        self.fail_on: Set[str] = set(fail_on or ())
        self.calls: List[Tuple[str, Any]] = []
        logger.info(f"Initialized mock device '{name}'")

    def _record(self, operation: str, argument: Any) -> None:
        self.calls.append((operation, argument))
        if operation in self.fail_on:
            self._state.error_count += 1
            raise DeviceError(f"{self.name}: simulated {operation} failure")
        self._state.touch()

    async def set_color(self, color: Color) -> None:
        """Set a solid color"""
        if not self.supports_color:
            raise UnsupportedOperation(f"{self.name} has no color channel")
        self._record("color", color)
        self._state.color = color
        self._state.pattern_id = None

    async def set_pattern(self, pattern: Pattern, speed: int) -> None:
        """Play a custom pattern"""
        if not self.supports_color:
            raise UnsupportedOperation(f"{self.name} has no pattern support")
        self._record("pattern", pattern.id)
        self._state.pattern_id = pattern.id

    async def set_power(self, on: bool) -> None:
        self._record("power", on)
        self._state.is_on = on

    async def set_brightness(self, value: int) -> None:
        self._record("brightness", value)
        self._state.brightness = value

    async def set_temperature(self, value: int) -> None:
        self._record("temperature", value)
        self._state.temperature = value

    def operations(self, operation: Optional[str] = None) -> List[Any]:
        """Arguments of recorded calls, optionally filtered by operation"""
        if operation is None:
            return list(self.calls)
        return [arg for op, arg in self.calls if op == operation]

    def reset(self) -> None:
        self.calls.clear()

    def get_state(self) -> Dict[str, Any]:
        return {**super().get_state(), "is_mock": True}
