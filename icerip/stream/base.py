"""
The contract between the session controller and a stream transport.
"""

from collections.abc import Callable
from typing import Protocol

from icerip.models.events import StreamEvent

EventSink = Callable[[StreamEvent], None]


class StreamSession(Protocol):
    """One connection to one stream URL."""

    def start(self) -> None:
        """
        Begins streaming without blocking. Calling it again after a
        StreamFailed reconnects to the same URL.
        """
        ...

    async def stop(self) -> None:
        """Releases every resource. Safe to call more than once."""
        ...


class StreamClient(Protocol):
    """Factory for stream sessions."""

    def connect(
        self, url: str, max_buffer_bytes: int, on_event: EventSink
    ) -> StreamSession:
        """
        Prepares a session delivering events to `on_event`.

        Raises:
            InvalidStreamUrlError: If `url` is not a well-formed stream URL.
        """
        ...
