"""
The recording session state machine.

A `SessionController` owns one stream session at a time. Stream events arrive on
a queue and are handled, in order, by a single dispatch loop (`run()`); user
commands (`request_save()`, `update_filters()`, `stop()`) may come from any
thread. Every read-modify-write of session state happens under one lock, and
nothing awaits while holding it.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine
from enum import Enum
from pathlib import Path
from typing import Any

from rich.markup import escape

from icerip.exceptions import InvalidDestinationError, InvalidStreamUrlError
from icerip.media.persister import TrackPersister
from icerip.models.config import RecorderConfig
from icerip.models.events import (
    MetadataChanged,
    SongChanged,
    StreamEvent,
    StreamFailed,
    StreamStarted,
)
from icerip.models.stats import SessionStats
from icerip.models.track import TrackEvent, TrackMetadata
from icerip.stream.base import EventSink, StreamClient, StreamSession
from icerip.utils.formatting import now_playing
from icerip.utils.path import is_valid_destination
from icerip.utils.structured_logger import RecorderLogger

from .connection import ConnectionState, ReconnectDecision
from .filter_set import FilterSet
from .notifier import Notifier
from .save_intent import SaveIntent

log = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of a recording session."""

    IDLE = "idle"
    STARTING = "starting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class StopReason(Enum):
    """Why a session entered STOPPED."""

    USER = "user"
    FIRST_CONNECT_FAILED = "first_connect_failed"
    RECONNECT_EXHAUSTED = "reconnect_exhausted"


STOP_MESSAGES = {
    StopReason.USER: "Stream stopped by user.",
    StopReason.FIRST_CONNECT_FAILED: (
        "Stream Failed to run. Ensure it's the correct type of url!"
    ),
    StopReason.RECONNECT_EXHAUSTED: (
        "Tried reconnecting max times. Stream may be down or URL is incorrect."
    ),
}

LIVE_STATES = (SessionState.STARTING, SessionState.CONNECTED, SessionState.RECONNECTING)

_SHUTDOWN = object()


class SessionController:
    """
    Decides which completed tracks get saved and keeps the stream connected.

    Args:
        config: Session settings; `filter_text` is kept in sync with
            `update_filters()` so it can be written back at shutdown.
        stream_client: Transport used to open the stream.
        notifier: Receives status, log and save-intent notifications.
        persister: Writes tracks to disk. Defaults to a plain TrackPersister.
        stats: Counters for this run.
        events: Optional structured event log.
    """

    def __init__(
        self,
        config: RecorderConfig,
        stream_client: StreamClient,
        notifier: Notifier,
        persister: TrackPersister | None = None,
        stats: SessionStats | None = None,
        events: RecorderLogger | None = None,
    ):
        self.config = config
        self.stream_client = stream_client
        self.notifier = notifier
        self.persister = persister or TrackPersister(config.file_extension)
        self.stats = stats or SessionStats()
        self.events = events

        self.filters = FilterSet(config.filter_text)
        self.connection = ConnectionState(config.max_reconnect_attempts)
        self.save_intent = SaveIntent(
            notifier.on_save_intent_changed, initial=self.filters.is_empty()
        )
        self.state = SessionState.IDLE
        self.stop_reason: StopReason | None = None

        self._lock = threading.RLock()
        self._session: StreamSession | None = None
        self._queue: asyncio.Queue | None = None
        self._pending: set[asyncio.Task] = set()
        self._handlers: dict[type, Callable[[Any], None]] = {
            StreamStarted: self._on_stream_started,
            MetadataChanged: self._on_metadata_changed,
            SongChanged: self._on_song_changed,
            StreamFailed: self._on_stream_failed,
        }

    @property
    def running(self) -> bool:
        with self._lock:
            return self.state in LIVE_STATES

    # --- Commands ---

    async def start(self) -> bool:
        """
        Opens the configured stream. Returns False if the session could not
        start (already running, bad save path, or a malformed URL).
        """
        with self._lock:
            if self.state in LIVE_STATES:
                log.debug(f"start() ignored; session is {self.state.value}.")
                return False

        if not is_valid_destination(self.config.save_path):
            self.notifier.on_log("Save Path Invalid! Can't start.", True)
            return False

        queue: asyncio.Queue = asyncio.Queue()
        with self._lock:
            self._queue = queue
            self.connection.max_reconnect_attempts = self.config.max_reconnect_attempts
            self.connection.reset()
            self.stop_reason = None
            self.state = SessionState.STARTING
            self.save_intent.set(self.filters.is_empty())

        try:
            session = self.stream_client.connect(
                self.config.stream_url,
                self.config.max_buffer_bytes,
                self._make_sink(queue),
            )
        except InvalidStreamUrlError as e:
            log.debug(f"Connect rejected: {e}")
            self._begin_stop(StopReason.FIRST_CONNECT_FAILED)
            return False

        with self._lock:
            self._session = session

        if self.events:
            self.events.session_started(
                self.config.stream_url,
                len(self.filters),
                self.config.max_reconnect_attempts,
            )
        self.notifier.on_status("Starting...")
        session.start()
        return True

    async def stop(self, reason: StopReason = StopReason.USER) -> None:
        """
        Stops the session and releases the stream before returning.
        Does nothing if no session is running.
        """
        session = self._begin_stop(reason)
        if session is not None:
            await session.stop()

    def request_save(self) -> None:
        """Marks the currently playing track to be saved when it completes."""
        with self._lock:
            self.save_intent.set(True)
        log.debug("Manual save requested for the current track.")

    def update_filters(self, raw_text: str) -> None:
        """Replaces the filter phrases with the lines of `raw_text`."""
        with self._lock:
            self.filters.rebuild(raw_text)
            self.config.filter_text = raw_text
            if self.filters.is_empty():
                self.save_intent.set(True)
            elif not self.save_intent.get():
                self.save_intent.set(False)
        log.debug(f"Filters updated: {self.filters!r}")

    # --- Event loop ---

    async def run(self) -> StopReason | None:
        """
        Dispatches stream events until the session stops, then waits for any
        track writes still in flight. Returns why the session stopped.
        """
        queue = self._queue
        if queue is None:
            return self.stop_reason

        while True:
            event = await queue.get()
            if event is _SHUTDOWN:
                break
            try:
                self.handle_event(event)
            except Exception as e:
                log.error(
                    f"[red]✗ Error handling {type(event).__name__}:[/] {e}",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )

        await self.drain()
        return self.stop_reason

    def handle_event(self, event: StreamEvent) -> None:
        """Applies a single stream event to the session state."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown stream event: {event!r}")

        with self._lock:
            if self.state not in LIVE_STATES:
                log.debug(f"Ignoring {type(event).__name__} while {self.state.value}.")
                return
            handler(event)

    async def drain(self) -> None:
        """Waits until every scheduled track write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Event handlers (called with the lock held) ---

    def _on_stream_started(self, event: StreamStarted) -> None:
        if self.connection.reconnect_attempts > 0:
            self.notifier.on_log("Attempting to reconnect...")
        else:
            self.notifier.on_log("Attempting to connect...")
        self.state = SessionState.CONNECTED

        if event.track is not None:
            self.notifier.on_log("Connected!")
            self._show_now_playing(event.track)

    def _on_metadata_changed(self, event: MetadataChanged) -> None:
        if self.filters.is_empty():
            self.save_intent.set(True)

        if not self.connection.connected:
            self.connection.connected = True
            self.notifier.on_log("Connected!")

        metadata = event.metadata
        if metadata is None:
            return

        self.connection.on_connected()
        self.state = SessionState.CONNECTED

        display = metadata.display
        if self.filters.matches(display):
            self.save_intent.set(True)
            self.stats.filter_matches += 1
            self.notifier.on_log(
                f"Found a matching song! Will save when completed playing: {display}"
            )
            if self.events:
                self.events.filter_matched(display)
        elif not self.filters.is_empty():
            self.save_intent.set(False)

        self._show_now_playing(metadata)

    def _on_song_changed(self, event: SongChanged) -> None:
        track = event.track
        if track is None or track.metadata is None or not track.metadata.has_artist:
            self.save_intent.set(False)
            return

        if (
            self.save_intent.get()
            or self.filters.is_empty()
            or self.filters.matches(track.metadata.display)
        ):
            self._spawn(self._persist(track))
        else:
            self.stats.tracks_skipped += 1
            log.debug(f"Not saving '{track.metadata.display}' (no match).")

        self.save_intent.set(False)

    def _on_stream_failed(self, event: StreamFailed) -> None:
        self.connection.on_disconnected()

        if not self.connection.ever_succeeded:
            self._release(self._begin_stop(StopReason.FIRST_CONNECT_FAILED))
            return

        if self.connection.record_attempt() is ReconnectDecision.GIVE_UP:
            self._release(self._begin_stop(StopReason.RECONNECT_EXHAUSTED))
            return

        attempt = self.connection.reconnect_attempts
        limit = self.connection.max_reconnect_attempts
        self.state = SessionState.RECONNECTING
        self.stats.reconnects += 1
        self.notifier.on_log(f"Connection lost. Reconnecting ({attempt}/{limit})...")
        if self.events:
            self.events.reconnect_scheduled(attempt, limit)
        asyncio.get_running_loop().call_soon(self._reconnect, self._session)

    # --- Internals ---

    def _reconnect(self, session: StreamSession | None) -> None:
        with self._lock:
            if (
                session is None
                or session is not self._session
                or self.state is not SessionState.RECONNECTING
            ):
                return
        session.start()

    def _begin_stop(self, reason: StopReason) -> StreamSession | None:
        """
        Moves to STOPPED and detaches the stream session, which the caller must
        release. Returns None if the session was not running.
        """
        with self._lock:
            if self.state not in LIVE_STATES:
                return None
            session, self._session = self._session, None
            queue = self._queue
            self.connection.reset()
            self.state = SessionState.STOPPED
            self.stop_reason = reason

        self.notifier.on_log(STOP_MESSAGES[reason], reason is not StopReason.USER)
        self.notifier.on_log("STREAM STOPPED")
        self.notifier.on_status("Waiting to start.")
        if self.events:
            self.events.session_stopped(reason.value)
        if queue is not None:
            queue.put_nowait(_SHUTDOWN)
        return session

    def _release(self, session: StreamSession | None) -> None:
        if session is not None:
            self._spawn(session.stop())

    def _make_sink(self, queue: asyncio.Queue) -> EventSink:
        """Builds the event callback handed to the stream client."""
        loop = asyncio.get_running_loop()
        owner_thread = threading.get_ident()

        def sink(event: StreamEvent) -> None:
            if threading.get_ident() == owner_thread:
                queue.put_nowait(event)
            elif not loop.is_closed():
                loop.call_soon_threadsafe(queue.put_nowait, event)

        return sink

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _show_now_playing(self, metadata: TrackMetadata) -> None:
        if metadata.title and metadata.title.strip():
            self.notifier.on_status(now_playing(metadata.display))

    async def _persist(self, track: TrackEvent) -> Path | None:
        display = track.metadata.display
        try:
            path = await self.persister.persist(track, self.config.save_path)
        except InvalidDestinationError as e:
            self.stats.save_failures += 1
            log.warning(f"[yellow]⚠ Not saved:[/] {escape(display)} ({e})")
            self.notifier.on_log(f"Save Path Invalid! Could not save: {display}", True)
            if self.events:
                self.events.track_save_failed(display, str(e))
            return None
        except (OSError, ValueError) as e:
            self.stats.save_failures += 1
            log.error(f"[red]✗ Failed to save:[/] {escape(display)} ({e})")
            self.notifier.on_log(f"Failed to save {display}: {e}", True)
            if self.events:
                self.events.track_save_failed(display, str(e))
            return None

        self.stats.record_save(display, track.size)
        self.notifier.on_log(f"SAVED SONG: {display}")
        if self.events:
            self.events.track_saved(display, str(path), track.size)
        return path
