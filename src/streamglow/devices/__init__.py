"""Output device backends and the facade over them"""

from .base import DeviceBackend, DeviceState
from .facade import DeviceFacade, create_facade
from .mock import MockBackend

__all__ = [
    "DeviceBackend",
    "DeviceState",
    "DeviceFacade",
    "create_facade",
    "MockBackend",
]
