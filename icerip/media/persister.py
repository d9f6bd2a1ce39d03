"""
Writes completed tracks to disk.
"""

import asyncio
import logging
from pathlib import Path

import aiofiles
from rich.markup import escape

from icerip.models.track import TrackEvent
from icerip.utils.path import track_filename, validate_destination

from .tagger import Tagger

log = logging.getLogger(__name__)


class TrackPersister:
    """
    Saves a completed track's raw audio as '<display>.<ext>' in a directory.

    The destination is re-validated before every write. Files with the same
    name are overwritten.
    """

    def __init__(self, file_extension: str = "mp3", tagger: Tagger | None = None):
        self.file_extension = file_extension.lstrip(".")
        self.tagger = tagger

    def build_path(self, track: TrackEvent, destination_dir: Path) -> Path:
        return destination_dir / track_filename(
            track.metadata.display, self.file_extension
        )

    async def persist(self, track: TrackEvent, destination_dir: str | Path) -> Path:
        """
        Writes the track and returns the path written.

        Raises:
            InvalidDestinationError: If `destination_dir` is unusable.
            ValueError: If the track carries no metadata to name it by.
            OSError: If the write itself fails.
        """
        directory = validate_destination(destination_dir)
        if track.metadata is None or not track.metadata.display:
            raise ValueError("Track has no metadata to build a filename.")

        final_path = self.build_path(track, directory)

        async with aiofiles.open(final_path, "wb") as f:
            await f.write(track.audio)

        if self.tagger and self.tagger.supports(self.file_extension):
            await asyncio.to_thread(self.tagger.tag_file, str(final_path), track.metadata)

        log.info(
            f"[green]✓ SAVED SONG:[/] {escape(track.metadata.display)} "
            f"[dim]({escape(final_path.name)})[/dim]"
        )
        return final_path
