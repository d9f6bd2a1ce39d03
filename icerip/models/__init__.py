"""
Data Models Layer.

This package contains the data structures shared across the application:
track metadata, stream events, the Pydantic configuration record, and
per-session statistics.
"""

from .config import RecorderConfig
from .events import MetadataChanged, SongChanged, StreamEvent, StreamFailed, StreamStarted
from .stats import SessionStats
from .track import TrackEvent, TrackMetadata

__all__ = [
    "MetadataChanged",
    "RecorderConfig",
    "SessionStats",
    "SongChanged",
    "StreamEvent",
    "StreamFailed",
    "StreamStarted",
    "TrackEvent",
    "TrackMetadata",
]
