"""
Stream Transport Layer.

This package defines the contract a stream transport fulfils for the session
controller, and provides an ICY (Icecast/SHOUTcast) implementation over aiohttp.
"""

from .base import EventSink, StreamClient, StreamSession
from .icy import IcyStreamClient, IcyStreamSession, validate_stream_url

__all__ = [
    "EventSink",
    "IcyStreamClient",
    "IcyStreamSession",
    "StreamClient",
    "StreamSession",
    "validate_stream_url",
]
