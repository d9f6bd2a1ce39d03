"""
Media Persistence Layer.

This package is responsible for writing captured tracks to disk and,
optionally, tagging them.
"""

from .persister import TrackPersister
from .tagger import Tagger

__all__ = ["Tagger", "TrackPersister"]
