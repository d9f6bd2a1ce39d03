"""
An aiohttp-based stream client for Icecast/SHOUTcast streams with ICY metadata.

The session buffers the audio of the track currently playing and, whenever the
announced title changes, hands the finished track over as a SongChanged event.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from urllib.parse import urlparse

import aiohttp

from icerip import __version__
from icerip.exceptions import ConnectionLostError, InvalidStreamUrlError
from icerip.models.events import (
    MetadataChanged,
    SongChanged,
    StreamEvent,
    StreamFailed,
    StreamStarted,
)
from icerip.models.track import TrackEvent, TrackMetadata

from .base import EventSink
from .metadata import IcyDemuxer, parse_stream_title

log = logging.getLogger(__name__)

USER_AGENT = f"icerip/{__version__}"
SUPPORTED_SCHEMES = ("http", "https")


def validate_stream_url(url: str) -> str:
    """Returns the stripped URL, or raises InvalidStreamUrlError."""
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in SUPPORTED_SCHEMES or not parsed.netloc:
        raise InvalidStreamUrlError(
            f"'{url}' is not a stream URL. Expected an http:// or https:// address."
        )
    return candidate


class TrackAssembler:
    """
    Accumulates audio for the current track and cuts it at title changes.

    Audio beyond `max_buffer_bytes` for a single track is dropped; the track is
    still delivered, truncated.
    """

    def __init__(self, max_buffer_bytes: int, on_event: Callable[[StreamEvent], None]):
        self.max_buffer_bytes = max_buffer_bytes
        self._on_event = on_event
        self.current: TrackMetadata | None = None
        self._buffer = bytearray()
        self._overflowed = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def add_audio(self, data: bytes) -> None:
        room = self.max_buffer_bytes - len(self._buffer)
        if len(data) > room:
            if not self._overflowed:
                log.warning(
                    f"[yellow]Buffer limit of {self.max_buffer_bytes} bytes reached "
                    f"for '{self.current or 'unknown track'}'; the rest of this "
                    "track will not be captured.[/yellow]"
                )
                self._overflowed = True
            data = data[: max(room, 0)]
        self._buffer += data

    def add_metadata(self, block: str) -> None:
        metadata = parse_stream_title(block)
        if metadata is None or metadata == self.current:
            return

        if self.current is not None:
            self._on_event(SongChanged(TrackEvent(self.current, bytes(self._buffer))))
            self._buffer = bytearray()
            self._overflowed = False

        self.current = metadata
        self._on_event(MetadataChanged(metadata))


class IcyStreamSession:
    """A single stream URL. `start()` (re)connects in a background task."""

    CHUNK_SIZE = 8192

    def __init__(
        self,
        url: str,
        max_buffer_bytes: int,
        on_event: EventSink,
        timeout: aiohttp.ClientTimeout,
    ):
        self.url = url
        self.max_buffer_bytes = max_buffer_bytes
        self._on_event = on_event
        self._timeout = timeout
        self._task: asyncio.Task | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._stopped:
            log.debug(f"Ignoring start() on stopped session for {self.url}")
            return
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            log.debug(f"Stream task for {self.url} cancelled.")

    def _emit(self, event: StreamEvent) -> None:
        if not self._stopped:
            self._on_event(event)

    async def _run(self) -> None:
        try:
            await self._stream(TrackAssembler(self.max_buffer_bytes, self._emit))
            raise ConnectionLostError("Server closed the stream.")
        except (
            aiohttp.ClientError,
            asyncio.TimeoutError,
            ConnectionLostError,
            ValueError,
        ) as e:
            log.debug(f"Stream '{self.url}' failed: {type(e).__name__}: {e}")

        # Cleared before emitting so a reconnect issued by the listener can start
        # a fresh task.
        self._task = None
        self._emit(StreamFailed())

    async def _stream(self, assembler: TrackAssembler) -> None:
        headers = {"Icy-MetaData": "1", "User-Agent": USER_AGENT}
        async with (
            aiohttp.ClientSession(timeout=self._timeout) as http,
            http.get(self.url, headers=headers, allow_redirects=True) as response,
        ):
            response.raise_for_status()
            metaint = int(response.headers.get("icy-metaint", "0") or 0)
            demuxer = IcyDemuxer(metaint)
            log.debug(
                f"Connected to {self.url} (metaint={metaint}, "
                f"name={response.headers.get('icy-name', '?')})"
            )
            self._emit(StreamStarted())

            async for data in response.content.iter_chunked(self.CHUNK_SIZE):
                for chunk in demuxer.feed(data):
                    if chunk.metadata is not None:
                        assembler.add_metadata(chunk.metadata)
                    else:
                        assembler.add_audio(chunk.audio)


class IcyStreamClient:
    """Creates ICY stream sessions."""

    def __init__(self, connect_timeout: float = 15, read_timeout: float = 30):
        self.timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=read_timeout
        )

    def connect(
        self, url: str, max_buffer_bytes: int, on_event: EventSink
    ) -> IcyStreamSession:
        return IcyStreamSession(
            validate_stream_url(url), max_buffer_bytes, on_event, self.timeout
        )
