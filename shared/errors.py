from __future__ import annotations

from typing import Optional


class SensorStreamError(Exception):
    """Base class for every error raised by the sensor stream client."""
    pass


class SampleDecodeError(SensorStreamError):
    """Raised when a frame cannot be decoded into a sample. Never fatal."""
    pass


class ConfigError(SensorStreamError):
    """Raised when configuration values or the config file are invalid."""
    pass


class StreamError(SensorStreamError):
    """
    Fatal stream-level error delivered to the dispatcher.

    Carries the URL it happened on so the final log line is useful on its own.
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url

    def __str__(self) -> str:
        base = super().__str__()
        if self.url:
            return f"{base} ({self.url})"
        return base


class StreamConnectError(StreamError):
    """Raised when the WebSocket dial or handshake fails."""
    pass


class StreamReadError(StreamError):
    """Raised when reading from an established connection fails."""
    pass
