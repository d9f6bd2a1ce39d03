"""
Utilities for validating save directories and building safe track filenames.
"""

import os
from pathlib import Path

from pathvalidate import sanitize_filename

from icerip.exceptions import InvalidDestinationError

FALLBACK_STEM = "Unknown Track"
MAX_FILENAME_BYTES = 255


def validate_destination(directory: str | Path | None) -> Path:
    """
    Returns the directory as a Path if it exists and is writable.

    Raises:
        InvalidDestinationError: If the path is empty, missing, not a directory,
        or not writable by the current user.
    """
    if directory is None or not str(directory).strip():
        raise InvalidDestinationError("No save directory configured.")

    path = Path(directory).expanduser()
    if not path.is_dir():
        raise InvalidDestinationError(f"Save directory does not exist: '{path}'")
    if not os.access(path, os.W_OK):
        raise InvalidDestinationError(f"Save directory is not writable: '{path}'")
    return path


def is_valid_destination(directory: str | Path | None) -> bool:
    try:
        validate_destination(directory)
    except InvalidDestinationError:
        return False
    return True


def track_filename(display: str, extension: str) -> str:
    """
    Builds '<stem>.<ext>' from a track's display string.

    Every character that is illegal in a path or filename on any supported
    platform is replaced with a single underscore. The stem is truncated so
    the whole name fits in MAX_FILENAME_BYTES.
    """
    ext = extension.lstrip(".")
    stem = ""
    if display and display.strip():
        stem = sanitize_filename(
            display,
            replacement_text="_",
            platform="universal",
            max_len=MAX_FILENAME_BYTES - len(ext.encode("utf-8")) - 1,
        )
    return f"{stem or FALLBACK_STEM}.{ext}"
