"""
Track metadata as announced by a stream, and the completed-track payload.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TrackMetadata:
    """The artist/title pair a stream announces for the currently playing track."""

    artist: str = ""
    title: str = ""

    @property
    def display(self) -> str:
        """Canonical 'Artist - Title' string, used for matching and filenames."""
        artist = self.artist.strip()
        title = self.title.strip()
        if artist and title:
            return f"{artist} - {title}"
        return artist or title

    @property
    def has_artist(self) -> bool:
        return bool(self.artist and self.artist.strip())

    def __str__(self) -> str:
        return self.display


@dataclass(frozen=True)
class TrackEvent:
    """A track that has just finished playing, with the audio captured for it."""

    metadata: TrackMetadata | None
    audio: bytes = field(default=b"", repr=False)

    @property
    def size(self) -> int:
        return len(self.audio)
