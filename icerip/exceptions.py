"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class IceRipError(Exception):
    """Base exception for all application-specific errors."""


class InvalidStreamUrlError(IceRipError):
    """Raised when a stream URL is malformed or uses an unsupported scheme."""


class InvalidDestinationError(IceRipError):
    """Raised when the save directory is missing, not a directory, or not writable."""


class ConnectionLostError(IceRipError):
    """
    Raised inside a stream session when the transport drops. Never reaches the
    session controller, which only sees the resulting StreamFailed event.
    """


class ReconnectExhaustedError(IceRipError):
    """Raised when a session ended because every reconnection attempt failed."""


class ConfigurationError(IceRipError):
    """Raised for issues related to configuration loading or validation."""
