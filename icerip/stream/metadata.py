"""
Parsing of ICY in-band metadata.

An ICY stream interleaves audio with metadata blocks: after every `icy-metaint`
audio bytes comes one length byte (block size / 16) followed by that many bytes
of `key='value';` pairs, NUL-padded.
"""

import re
from dataclasses import dataclass

from icerip.models.track import TrackMetadata

_STREAM_TITLE = re.compile(r"StreamTitle='(?P<title>.*?)';", re.DOTALL)
ARTIST_TITLE_SEPARATOR = " - "


@dataclass(frozen=True)
class IcyChunk:
    """Either a run of audio bytes or one decoded metadata block."""

    audio: bytes = b""
    metadata: str | None = None


def decode_metadata_block(block: bytes) -> str:
    raw = block.rstrip(b"\x00")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def parse_stream_title(block: str) -> TrackMetadata | None:
    """
    Extracts the StreamTitle of a metadata block as artist/title.

    Returns None when the block has no StreamTitle at all. A blank StreamTitle
    (ads, station idents) yields empty metadata, and a title without an
    'Artist - Title' separator is returned with an empty artist.
    """
    match = _STREAM_TITLE.search(block)
    if not match:
        return None

    stream_title = match.group("title").strip()
    if not stream_title:
        return TrackMetadata()

    artist, sep, title = stream_title.partition(ARTIST_TITLE_SEPARATOR)
    if not sep:
        return TrackMetadata(artist="", title=stream_title)
    return TrackMetadata(artist=artist.strip(), title=title.strip())


class IcyDemuxer:
    """
    Splits a raw ICY byte stream into audio runs and metadata blocks.

    Feed it chunks of any size, as they arrive from the socket.
    """

    def __init__(self, metaint: int):
        if metaint < 0:
            raise ValueError("metaint cannot be negative")
        self.metaint = metaint
        self._audio_left = metaint
        self._meta_left: int | None = None
        self._meta_buf = bytearray()

    def feed(self, data: bytes) -> list[IcyChunk]:
        if not self.metaint:
            return [IcyChunk(audio=bytes(data))] if data else []

        chunks: list[IcyChunk] = []
        view = memoryview(data)
        pos = 0
        while pos < len(view):
            if self._meta_left is not None:
                n = min(self._meta_left, len(view) - pos)
                self._meta_buf += view[pos : pos + n]
                self._meta_left -= n
                pos += n
                if self._meta_left == 0:
                    chunks.append(IcyChunk(metadata=decode_metadata_block(self._meta_buf)))
                    self._reset_audio()
            elif self._audio_left > 0:
                n = min(self._audio_left, len(view) - pos)
                chunks.append(IcyChunk(audio=bytes(view[pos : pos + n])))
                self._audio_left -= n
                pos += n
            else:
                # Length byte: block size in units of 16 bytes
                length = view[pos] * 16
                pos += 1
                if length:
                    self._meta_left = length
                else:
                    self._reset_audio()
        return chunks

    def _reset_audio(self) -> None:
        self._meta_left = None
        self._meta_buf = bytearray()
        self._audio_left = self.metaint
