"""
The four events a stream session delivers to the session controller.

Each event is a small frozen dataclass; together they form the `StreamEvent`
union that the controller's dispatch loop consumes.
"""

from dataclasses import dataclass

from .track import TrackEvent, TrackMetadata


@dataclass(frozen=True)
class StreamStarted:
    """The transport is up and audio is flowing."""

    track: TrackMetadata | None = None


@dataclass(frozen=True)
class MetadataChanged:
    """The stream announced (possibly repeated) metadata for the current track."""

    metadata: TrackMetadata | None = None


@dataclass(frozen=True)
class SongChanged:
    """A track boundary was crossed; carries the track that just completed."""

    track: TrackEvent | None = None


@dataclass(frozen=True)
class StreamFailed:
    """The transport failed or the stream ended."""


StreamEvent = StreamStarted | MetadataChanged | SongChanged | StreamFailed
