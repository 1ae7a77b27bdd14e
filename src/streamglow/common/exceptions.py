"""Common exceptions for the streamglow system."""


class StreamglowError(Exception):
    """Base exception for all streamglow errors."""

    pass


class ValidationError(StreamglowError):
    """Input validation error."""

    pass


class ConfigurationError(StreamglowError):
    """Configuration error."""

    pass


class CommunicationError(StreamglowError):
    """Communication or network error."""

    pass


class PayloadError(StreamglowError):
    """Malformed or undecodable feed payload."""

    pass


class DeviceError(StreamglowError):
    """Device call failed."""

    pass


class UnsupportedOperation(DeviceError):
    """Device backend does not offer the requested capability."""

    pass


class CommandError(StreamglowError):
    """Command could not be routed."""

    pass
