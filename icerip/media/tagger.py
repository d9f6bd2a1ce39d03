"""
Writes artist/title tags to saved tracks.

Stream rips arrive as raw frames without any tag header, so the only metadata
a saved file can carry is what the stream announced for it.
"""

import logging
import os

import mutagen.id3 as id3
from mutagen import MutagenError
from mutagen.id3 import ID3NoHeaderError

from icerip.models.track import TrackMetadata

log = logging.getLogger(__name__)

TAGGABLE_EXTENSIONS = {"mp3"}


class Tagger:
    """Adds ID3v2.3 artist/title frames to saved MP3 files."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def supports(self, extension: str) -> bool:
        return self.enabled and extension.lower().lstrip(".") in TAGGABLE_EXTENSIONS

    def tag_file(self, path: str, metadata: TrackMetadata) -> bool:
        """
        Tags the file in place. Returns False instead of raising when the file
        cannot be tagged, since the audio itself is already safely on disk.
        """
        ext = os.path.splitext(path)[1]
        if not self.supports(ext):
            return False

        try:
            try:
                audio = id3.ID3(path)
            except ID3NoHeaderError:
                audio = id3.ID3()

            if metadata.title.strip():
                audio.add(id3.TIT2(encoding=3, text=metadata.title.strip()))
            if metadata.artist.strip():
                audio.add(id3.TPE1(encoding=3, text=metadata.artist.strip()))
            audio.add(id3.TXXX(encoding=3, desc="SOURCE", text="icerip stream capture"))

            audio.save(filename=path, v2_version=3)
            return True
        except (MutagenError, OSError) as e:
            log.warning(f"[yellow]Could not tag '{os.path.basename(path)}':[/] {e}")
            return False
