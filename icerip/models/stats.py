"""
Dataclass for tracking recording session statistics.
"""

import time
from collections import deque
from dataclasses import dataclass, field

RECENT_TITLES = 10


@dataclass
class SessionStats:
    """Counters for a single recording run."""

    tracks_saved: int = 0
    tracks_skipped: int = 0
    save_failures: int = 0
    filter_matches: int = 0
    reconnects: int = 0
    bytes_saved: int = 0
    saved_titles: deque[str] = field(
        default_factory=lambda: deque(maxlen=RECENT_TITLES), repr=False
    )
    _start_time: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._start_time = time.monotonic()

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self._start_time

    def record_save(self, display: str, size: int) -> None:
        self.tracks_saved += 1
        self.bytes_saved += size
        self.saved_titles.append(display)
