"""Core system components for effect orchestration"""

from .commands import (
    Command,
    CommandKind,
    DeviceSelector,
    SourcePriority,
    TransientEffect,
    ambient_command,
    normalize_color,
    strobe_command,
)
from .config import SystemConfig, SystemDefaults
from .state import AmbientState, ConnectionState, ScoreState, ScoreTracker

__all__ = [
    # Configuration
    "SystemConfig",
    "SystemDefaults",
    # Commands
    "Command",
    "CommandKind",
    "DeviceSelector",
    "SourcePriority",
    "TransientEffect",
    "ambient_command",
    "normalize_color",
    "strobe_command",
    # State
    "AmbientState",
    "ConnectionState",
    "ScoreState",
    "ScoreTracker",
]
