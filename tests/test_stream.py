import asyncio

import pytest
from aiohttp import test_utils, web

from icerip.exceptions import InvalidStreamUrlError
from icerip.models.events import MetadataChanged, SongChanged, StreamFailed
from icerip.models.track import TrackMetadata
from icerip.stream.icy import IcyStreamClient, TrackAssembler, validate_stream_url
from icerip.stream.metadata import IcyDemuxer, parse_stream_title


def metadata_block(text: str) -> bytes:
    """Encodes text as an ICY metadata block: length byte plus NUL padding."""
    raw = text.encode("utf-8")
    blocks = -(-len(raw) // 16)
    return bytes([blocks]) + raw.ljust(blocks * 16, b"\x00")


def collect(demuxer: IcyDemuxer, data: bytes, step: int):
    audio = bytearray()
    titles = []
    for i in range(0, len(data), step):
        for chunk in demuxer.feed(data[i : i + step]):
            if chunk.metadata is not None:
                titles.append(chunk.metadata)
            else:
                audio += chunk.audio
    return bytes(audio), titles


@pytest.mark.parametrize("step", [1, 3, 7, 64, 4096])
def test_demuxer_separates_audio_and_metadata(step):
    stream = (
        b"A" * 8
        + metadata_block("StreamTitle='One - First';")
        + b"B" * 8
        + b"\x00"
        + b"C" * 8
        + metadata_block("StreamTitle='Two - Second';")
        + b"D" * 4
    )

    audio, titles = collect(IcyDemuxer(metaint=8), stream, step)

    assert audio == b"A" * 8 + b"B" * 8 + b"C" * 8 + b"D" * 4
    assert titles == ["StreamTitle='One - First';", "StreamTitle='Two - Second';"]


def test_demuxer_without_metaint_passes_audio_through():
    demuxer = IcyDemuxer(metaint=0)

    chunks = demuxer.feed(b"abc")

    assert [c.audio for c in chunks] == [b"abc"]
    assert demuxer.feed(b"") == []


@pytest.mark.parametrize(
    ("block", "expected"),
    [
        ("StreamTitle='Daft Punk - One More Time';", TrackMetadata("Daft Punk", "One More Time")),
        (
            "StreamTitle='Artist - Title - Remix';StreamUrl='';",
            TrackMetadata("Artist", "Title - Remix"),
        ),
        ("StreamTitle='Station Jingle';", TrackMetadata("", "Station Jingle")),
        ("StreamTitle='';", TrackMetadata()),
        ("StreamUrl='http://example.com';", None),
    ],
)
def test_parse_stream_title(block, expected):
    assert parse_stream_title(block) == expected


def test_assembler_emits_completed_track_before_new_metadata():
    events = []
    assembler = TrackAssembler(max_buffer_bytes=1024, on_event=events.append)

    assembler.add_audio(b"intro")
    assembler.add_metadata("StreamTitle='A - One';")
    assembler.add_audio(b"-one")
    assembler.add_metadata("StreamTitle='A - One';")  # repeated block
    assembler.add_audio(b"-more")
    assembler.add_metadata("StreamTitle='B - Two';")

    assert [type(e) for e in events] == [MetadataChanged, SongChanged, MetadataChanged]
    completed = events[1].track
    assert completed.metadata == TrackMetadata("A", "One")
    assert completed.audio == b"intro-one-more"
    assert events[2].metadata == TrackMetadata("B", "Two")
    assert assembler.buffered == 0


def test_assembler_truncates_oversized_track():
    events = []
    assembler = TrackAssembler(max_buffer_bytes=10, on_event=events.append)
    assembler.add_metadata("StreamTitle='A - Long';")

    assembler.add_audio(b"x" * 6)
    assembler.add_audio(b"y" * 6)
    assembler.add_audio(b"z" * 6)
    assembler.add_metadata("StreamTitle='B - Next';")

    assert events[1].track.audio == b"x" * 6 + b"y" * 4


@pytest.mark.parametrize(
    "url",
    ["http://radio.example.com/stream", "https://radio.example.com:8443/live.mp3"],
)
def test_validate_stream_url_accepts_http(url):
    assert validate_stream_url(f"  {url} ") == url


@pytest.mark.parametrize(
    "url", ["", "radio.example.com/stream", "ftp://example.com/a", "http://", "not a url"]
)
def test_validate_stream_url_rejects_malformed(url):
    with pytest.raises(InvalidStreamUrlError):
        validate_stream_url(url)


def test_client_connect_fails_fast_on_bad_url():
    with pytest.raises(InvalidStreamUrlError):
        IcyStreamClient().connect("mms://old.example.com", 1024, lambda event: None)


async def test_session_stop_is_idempotent_and_blocks_restart():
    events = []
    session = IcyStreamClient().connect(
        "http://127.0.0.1:9/never", 1024, events.append
    )

    await session.stop()
    await session.stop()
    session.start()

    assert not session.running
    assert events == []


ICY_BODY = (
    b"A" * 8
    + metadata_block("StreamTitle='One - First';")
    + b"B" * 8
    + metadata_block("StreamTitle='Two - Second';")
    + b"C" * 8
)


class IcyServer:
    def __init__(self, server, requests):
        self.server = server
        self.requests = requests

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))


@pytest.fixture
async def icy_server():
    """Serves one burst of ICY frames per request, then closes the stream."""
    requests = []

    async def handler(request: web.Request) -> web.StreamResponse:
        requests.append(request.headers.get("Icy-MetaData"))
        response = web.StreamResponse(headers={"icy-metaint": "8", "icy-name": "Test FM"})
        await response.prepare(request)
        await response.write(ICY_BODY)
        return response

    async def missing(request: web.Request) -> web.Response:
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/live", handler)
    app.router.add_get("/gone", missing)
    server = test_utils.TestServer(app)
    await server.start_server()
    yield IcyServer(server, requests)
    await server.close()


class EventCollector:
    def __init__(self):
        self.events = []
        self._failures = asyncio.Queue()

    def __call__(self, event):
        self.events.append(event)
        if isinstance(event, StreamFailed):
            self._failures.put_nowait(event)

    async def wait_for_failure(self):
        await asyncio.wait_for(self._failures.get(), timeout=5)

    @property
    def kinds(self):
        return [type(e).__name__ for e in self.events]


async def test_session_emits_events_in_stream_order(icy_server):
    collector = EventCollector()
    session = IcyStreamClient().connect(
        icy_server.url("/live"), 1024, collector
    )

    session.start()
    await collector.wait_for_failure()
    await asyncio.sleep(0.05)

    assert collector.kinds == [
        "StreamStarted",
        "MetadataChanged",
        "SongChanged",
        "MetadataChanged",
        "StreamFailed",
    ]
    assert collector.events[1].metadata == TrackMetadata("One", "First")
    finished = collector.events[2].track
    assert finished.metadata == TrackMetadata("One", "First")
    assert finished.audio == b"A" * 8 + b"B" * 8
    assert collector.events[3].metadata == TrackMetadata("Two", "Second")
    assert icy_server.requests == ["1"]
    assert not session.running
    await session.stop()


async def test_session_restarts_with_fresh_connection_after_failure(icy_server):
    collector = EventCollector()
    session = IcyStreamClient().connect(
        icy_server.url("/live"), 1024, collector
    )

    session.start()
    await collector.wait_for_failure()
    session.start()
    await collector.wait_for_failure()
    await session.stop()

    assert len(icy_server.requests) == 2
    assert collector.kinds.count("StreamStarted") == 2
    assert collector.kinds.count("StreamFailed") == 2


async def test_session_reports_http_error_as_failure_only(icy_server):
    collector = EventCollector()
    session = IcyStreamClient().connect(
        icy_server.url("/gone"), 1024, collector
    )

    session.start()
    await collector.wait_for_failure()
    await session.stop()

    assert collector.kinds == ["StreamFailed"]


async def test_stop_silences_a_connected_session(icy_server):
    collector = EventCollector()
    session = IcyStreamClient().connect(
        icy_server.url("/live"), 1024, collector
    )

    session.start()
    await session.stop()
    await asyncio.sleep(0.05)

    assert not session.running
    assert "StreamFailed" not in collector.kinds
