"""Shared types and exceptions"""

from .colors import (
    COLORS,
    PATTERNS,
    REDEMPTION_CHOICES,
    Color,
    Pattern,
    Transition,
    lookup_ambient_pattern,
    lookup_color,
    lookup_pattern,
    strobe_pattern,
)
from .exceptions import (
    CommandError,
    CommunicationError,
    ConfigurationError,
    DeviceError,
    PayloadError,
    StreamglowError,
    UnsupportedOperation,
    ValidationError,
)

__all__ = [
    # Colors and patterns
    "COLORS",
    "PATTERNS",
    "REDEMPTION_CHOICES",
    "Color",
    "Pattern",
    "Transition",
    "lookup_ambient_pattern",
    "lookup_color",
    "lookup_pattern",
    "strobe_pattern",
    # Exceptions
    "StreamglowError",
    "ValidationError",
    "ConfigurationError",
    "CommunicationError",
    "PayloadError",
    "DeviceError",
    "UnsupportedOperation",
    "CommandError",
]
